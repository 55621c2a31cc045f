"""Allow-listing and canonicalisation of scrape target URLs."""

from __future__ import annotations

from typing import Optional
from urllib.parse import SplitResult, urlsplit, urlunsplit

from backend.scraper.errors import ScrapeError, ScrapeErrorCode

ALLOWED_UPWORK_HOSTS = frozenset({"upwork.com", "www.upwork.com"})
HTTPS_DEFAULT_PORT = 443

_UNSUPPORTED_MESSAGE = "Only Upwork job URLs are supported in this version"


def _parse_absolute(url: str) -> SplitResult:
    try:
        parsed = urlsplit(url)
    except ValueError as exc:
        raise ScrapeError(ScrapeErrorCode.INVALID_URL, "Invalid URL format", cause=exc) from exc
    if not parsed.scheme or not parsed.netloc:
        raise ScrapeError(ScrapeErrorCode.INVALID_URL, "Invalid URL format")
    return parsed


def _checked_authority(parsed: SplitResult) -> tuple[str, Optional[int]]:
    """Return the allow-listed ``(host, port)`` of *parsed*.

    Browsers treat ``\\`` as a path separator, so an authority containing one
    names a different host than ``urlsplit`` reports.  Userinfo is refused
    outright; neither form appears in a genuine job link.
    """
    if "\\" in parsed.netloc:
        raise ScrapeError(ScrapeErrorCode.UNSUPPORTED_DOMAIN, _UNSUPPORTED_MESSAGE)
    if "@" in parsed.netloc:
        raise ScrapeError(ScrapeErrorCode.INVALID_URL, "Invalid URL format")
    try:
        port = parsed.port
    except ValueError as exc:
        raise ScrapeError(ScrapeErrorCode.INVALID_URL, "Invalid URL format", cause=exc) from exc
    if not is_allowed_upwork_host(parsed.hostname):
        raise ScrapeError(ScrapeErrorCode.UNSUPPORTED_DOMAIN, _UNSUPPORTED_MESSAGE)
    return (parsed.hostname or "").lower(), port


def is_allowed_upwork_host(hostname: Optional[str]) -> bool:
    return (hostname or "").lower() in ALLOWED_UPWORK_HOSTS


def assert_allowed_upwork_host(url: str) -> None:
    """Raise ``UNSUPPORTED_DOMAIN`` unless *url* points at an allow-listed host.

    Applied to the input URL and again to wherever a fetch finally landed,
    so a redirect cannot carry the scraper off Upwork.
    """
    _checked_authority(_parse_absolute(url))


def validate_upwork_url(input_url: object) -> str:
    """Validate *input_url* and return its canonical form without a fragment.

    The authority is rebuilt from the checked host (lowercased) and any
    non-default port, so the returned URL names exactly the host that passed
    the allow-list.

    Raises:
        ScrapeError: ``INVALID_URL`` for empty, malformed or non-HTTPS input;
            ``UNSUPPORTED_DOMAIN`` when the host is not Upwork.
    """
    if not isinstance(input_url, str) or not input_url.strip():
        raise ScrapeError(ScrapeErrorCode.INVALID_URL, "A valid URL is required")

    parsed = _parse_absolute(input_url.strip())
    if parsed.scheme.lower() != "https":
        raise ScrapeError(ScrapeErrorCode.INVALID_URL, "Only HTTPS URLs are supported")

    host, port = _checked_authority(parsed)
    netloc = host if port in (None, HTTPS_DEFAULT_PORT) else f"{host}:{port}"

    return urlunsplit(("https", netloc, parsed.path or "/", parsed.query, ""))
