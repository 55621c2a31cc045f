"""Job detail extraction: turns raw Upwork HTML into a :class:`ScrapeResult`.

Each field is looked up through an ordered list of CSS selectors (most
specific Upwork markers first), then through regex heuristics over the
visible page text.  Only ``title`` and ``description`` are required; a
missing budget or skill list is reported as a warning.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup
from markdownify import ATX, markdownify

from backend.scraper.errors import ScrapeError, ScrapeErrorCode
from backend.scraper.models import ExtractionMode, ScrapeResult


# ---------------------------------------------------------------------------
# Selector priority lists
# ---------------------------------------------------------------------------

TITLE_SELECTORS = (
    'h1[data-test="job-title"]',
    'h1[data-test="job-title-text"]',
    "h1.air3-line-clamp",
    "h1",
)
TITLE_META_SELECTORS = ('meta[property="og:title"]',)

DESCRIPTION_SELECTORS = (
    '[data-test="job-description-text"]',
    '[data-test="job-description"]',
    'section[data-test="JobDescription"]',
    'div[data-qa="job-description"]',
    "article",
)
DESCRIPTION_META_SELECTORS = ('meta[name="description"]',)

BUDGET_SELECTORS = (
    '[data-test="job-budget"]',
    '[data-test="is-fixed-price"]',
    '[data-test="hourly-rate"]',
    'li[data-test*="budget"]',
    'div[data-test*="budget"]',
)

SKILL_TOKEN_SELECTORS = (
    '[data-test="job-skills"] [data-test="Token"]',
    '[data-test="Skills"] [data-test="Token"]',
    'a[data-test="link-skill"]',
    'span[data-test="skill"]',
    ".air3-token",
)

# Text fallback for skills: how far past the "Skills" header to look, and
# which fragments count as a skill name.
SKILLS_WINDOW_CHARS = 280
SKILL_MIN_CHARS = 2
SKILL_MAX_CHARS = 39
SKILLS_FALLBACK_LIMIT = 12

_NON_VISIBLE_TAGS = ["script", "style", "noscript", "template"]

_MONEY = r"\$\s?\d[\d,]*(?:\.\d{1,2})?"
_HOURLY = r"(?:/hr|per hour|hourly)"

BUDGET_PATTERNS = (
    re.compile(rf"({_MONEY}\s?-\s?{_MONEY}\s?{_HOURLY}?)", re.IGNORECASE),
    re.compile(rf"({_MONEY}\s?{_HOURLY})", re.IGNORECASE),
    re.compile(rf"(Budget\s*[:\-]?\s*{_MONEY}(?:\s?-\s?{_MONEY})?)", re.IGNORECASE),
    re.compile(rf"(Fixed\s*Price\s*[:\-]?\s*{_MONEY})", re.IGNORECASE),
)

_SKILLS_SECTION = re.compile(
    r"Skills(?:\s+and\s+Expertise)?\s*[:\n]?([\s\S]{0,%d})" % SKILLS_WINDOW_CHARS,
    re.IGNORECASE,
)
_SKILL_SEPARATORS = re.compile(r"[\n,|·•]")

WARN_NO_TITLE = "Could not confidently detect job title"
WARN_NO_DESCRIPTION = "Could not confidently detect job description"
WARN_NO_BUDGET = "Budget was not found"
WARN_NO_SKILLS = "Skills were not found"


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def normalize_whitespace(text: Optional[str]) -> str:
    """Collapse horizontal whitespace and blank-line runs, keep line breaks."""
    if not text:
        return ""
    text = text.replace("\r", "")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]+\n", "\n", text)
    return text.strip()


def html_to_markdown(html: Optional[str]) -> str:
    """Convert a rich-text HTML fragment to normalized markdown."""
    if not html:
        return ""
    markdown = markdownify(html, heading_style=ATX, bullets="-")
    return normalize_whitespace(markdown)


def unique_non_empty(values: Iterable[Optional[str]]) -> List[str]:
    """Normalize *values* and drop empties and case-insensitive duplicates.

    The first occurrence wins, keeping its original casing and position.
    """
    out: List[str] = []
    seen: set[str] = set()
    for value in values:
        cleaned = normalize_whitespace(value)
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        out.append(cleaned)
    return out


def extract_budget_from_text(full_text: Optional[str]) -> str:
    """Return the first budget-looking phrase in *full_text*, or ``""``."""
    if not full_text:
        return ""
    for pattern in BUDGET_PATTERNS:
        match = pattern.search(full_text)
        if match and match.group(1):
            return normalize_whitespace(match.group(1))
    return ""


def extract_skills_from_text(full_text: Optional[str]) -> List[str]:
    """Split the text following a "Skills" header into candidate skill names."""
    if not full_text:
        return []
    match = _SKILLS_SECTION.search(full_text)
    if not match or not match.group(1):
        return []

    skills: List[str] = []
    for fragment in _SKILL_SEPARATORS.split(match.group(1)):
        item = normalize_whitespace(fragment)
        if SKILL_MIN_CHARS <= len(item) <= SKILL_MAX_CHARS:
            skills.append(item)
    return skills[:SKILLS_FALLBACK_LIMIT]


# ---------------------------------------------------------------------------
# DOM helpers
# ---------------------------------------------------------------------------

def _pick_first_text(soup: BeautifulSoup, selectors: Sequence[str]) -> str:
    for selector in selectors:
        el = soup.select_one(selector)
        if el is not None:
            value = normalize_whitespace(el.get_text())
            if value:
                return value
    return ""


def _pick_first_attr(soup: BeautifulSoup, selectors: Sequence[str], attr: str = "content") -> str:
    for selector in selectors:
        el = soup.select_one(selector)
        value = normalize_whitespace(el.get(attr, "") if el is not None else "")
        if value:
            return value
    return ""


def _pick_first_inner_html(soup: BeautifulSoup, selectors: Sequence[str]) -> str:
    for selector in selectors:
        el = soup.select_one(selector)
        if el is not None:
            inner = el.decode_contents()
            if inner:
                return inner
    return ""


def _page_text(soup: BeautifulSoup) -> str:
    """Visible body text.  Removes non-visible tags from *soup* in place.

    ``html.parser`` adds no implicit ``<body>``; without one, everything
    outside ``<head>`` counts as the body.
    """
    root = soup.body
    if root is None:
        root = soup
        if soup.head is not None:
            soup.head.decompose()
    for tag in root(_NON_VISIBLE_TAGS):
        tag.decompose()
    return normalize_whitespace(root.get_text())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_from_html(html: str, page_url: str, mode: ExtractionMode) -> ScrapeResult:
    """Extract job details from *html* fetched from *page_url*.

    Raises:
        ScrapeError: ``SCRAPE_FAILED`` when either the title or the
            description cannot be found.
    """
    soup = BeautifulSoup(html or "", "html.parser")

    title = next(
        iter(
            unique_non_empty(
                [
                    _pick_first_text(soup, TITLE_SELECTORS),
                    _pick_first_attr(soup, TITLE_META_SELECTORS),
                ]
            )
        ),
        "",
    )

    description_html = _pick_first_inner_html(soup, DESCRIPTION_SELECTORS)
    if description_html:
        description = normalize_whitespace(html_to_markdown(description_html))
    else:
        description = _pick_first_attr(soup, DESCRIPTION_META_SELECTORS)

    budget_from_dom = _pick_first_text(soup, BUDGET_SELECTORS)
    skill_tokens = [el.get_text() for el in soup.select(", ".join(SKILL_TOKEN_SELECTORS))]

    page_text = _page_text(soup)

    budget = next(
        iter(unique_non_empty([budget_from_dom, extract_budget_from_text(page_text)])),
        "",
    )
    skills = unique_non_empty([*skill_tokens, *extract_skills_from_text(page_text)])

    warnings: List[str] = []
    if not title:
        warnings.append(WARN_NO_TITLE)
    if not description:
        warnings.append(WARN_NO_DESCRIPTION)
    if not budget:
        warnings.append(WARN_NO_BUDGET)
    if not skills:
        warnings.append(WARN_NO_SKILLS)

    if not title or not description:
        raise ScrapeError(
            ScrapeErrorCode.SCRAPE_FAILED,
            "Could not extract required job details from this URL",
        )

    return ScrapeResult(
        url=page_url,
        title=title,
        description=description,
        budget=budget or None,
        skills=", ".join(skills),
        mode=mode,
        warnings=warnings,
    )
