"""Bot-protection (Cloudflare) interstitial detection heuristics."""

from __future__ import annotations

from typing import Optional

_CHALLENGE_MARKERS = (
    "checking your browser before accessing",
    "just a moment...",
    "attention required! | cloudflare",
    "cf-browser-verification",
    "cdn-cgi/challenge-platform",
    "cf-turnstile",
)

_CHALLENGE_TITLES = ("just a moment", "attention required")
_CHALLENGE_PATH = "cdn-cgi/challenge-platform"
_BROWSER_CHECK_TEXT = "checking your browser before accessing"


def has_challenge_markers(html: Optional[str]) -> bool:
    """Return ``True`` if *html* mentions any known challenge marker at all."""
    if not html:
        return False
    normalized = html.lower()
    return any(marker in normalized for marker in _CHALLENGE_MARKERS)


def looks_like_challenge(html: Optional[str], page_title: Optional[str] = "") -> bool:
    """Return ``True`` if the page is probably a challenge page, not job content.

    Stricter than :func:`has_challenge_markers`: a bare marker somewhere in a
    real page (e.g. a turnstile script) is not enough on its own.
    """
    normalized_title = (page_title or "").lower()
    normalized_html = (html or "").lower()

    if any(marker in normalized_title for marker in _CHALLENGE_TITLES):
        return True
    if _CHALLENGE_PATH in normalized_html:
        return True
    return _BROWSER_CHECK_TEXT in normalized_html and has_challenge_markers(normalized_html)
