"""Scrape entry point: validate, render in a browser, fall back to plain HTTP."""

from __future__ import annotations

import logging
from typing import Optional

from backend.config import settings
from backend.scraper.challenge import looks_like_challenge
from backend.scraper.errors import ScrapeError, ScrapeErrorCode, normalize_scrape_error
from backend.scraper.extractor import extract_from_html, unique_non_empty
from backend.scraper.fetcher import BrowserFetcher, Fetcher, HttpFetcher
from backend.scraper.models import ExtractionMode, FetchedPage, ScrapeResult
from backend.scraper.urls import validate_upwork_url

logger = logging.getLogger(__name__)

WARN_PROTECTION = "Cloudflare markers were detected; extracted data may be partial"
WARN_PARSER_FALLBACK = "Used parser fallback extraction mode"
BLOCKED_MESSAGE = (
    "Could not fetch this URL due to page protection. "
    "Please fill fields manually and continue."
)


def extract_fetched_page(page: FetchedPage, mode: ExtractionMode) -> ScrapeResult:
    """Extract job details from a fetched page, accounting for bot protection.

    A failed extraction on a page that carries challenge markers is reported
    as ``SCRAPE_BLOCKED_CLOUDFLARE``; otherwise the extractor's own
    ``SCRAPE_FAILED`` propagates.
    """
    challenge_likely = looks_like_challenge(page.html, page.title or "")

    try:
        result = extract_from_html(page.html, page.url, mode)
    except ScrapeError as exc:
        if challenge_likely:
            raise ScrapeError(
                ScrapeErrorCode.SCRAPE_BLOCKED_CLOUDFLARE, BLOCKED_MESSAGE, cause=exc
            ) from exc
        raise

    extra = []
    if mode == "parser":
        extra.append(WARN_PARSER_FALLBACK)
    if challenge_likely:
        extra.append(WARN_PROTECTION)
    result.warnings = unique_non_empty([*result.warnings, *extra])
    return result


async def _scrape_with(fetcher: Fetcher, url: str) -> ScrapeResult:
    page = await fetcher.fetch(url)
    return extract_fetched_page(page, fetcher.mode)


async def fetch_via_browser(url: str, fetcher: Optional[Fetcher] = None) -> ScrapeResult:
    """Scrape *url* by rendering it in headless Chromium."""
    return await _scrape_with(fetcher or BrowserFetcher(), url)


async def fetch_via_http(url: str, fetcher: Optional[Fetcher] = None) -> ScrapeResult:
    """Scrape *url* from its raw HTML without rendering."""
    return await _scrape_with(fetcher or HttpFetcher(), url)


async def scrape_job_url(
    raw_url: str,
    *,
    browser_fetcher: Optional[Fetcher] = None,
    http_fetcher: Optional[Fetcher] = None,
    enable_parser_fallback: Optional[bool] = None,
) -> ScrapeResult:
    """Scrape an Upwork job URL into a :class:`ScrapeResult`.

    The browser is tried first.  If it fails and the parser fallback is
    enabled, the plain-HTTP attempt decides the outcome and the browser error
    is dropped.

    Raises:
        ScrapeError: Always typed; unknown failures become ``SCRAPE_FAILED``.
    """
    safe_url = validate_upwork_url(raw_url)
    if enable_parser_fallback is None:
        enable_parser_fallback = settings.enable_parser_fallback

    logger.info("Scraping %s with browser", safe_url)
    try:
        return await fetch_via_browser(safe_url, browser_fetcher)
    except Exception as exc:
        browser_error = normalize_scrape_error(exc)
        if not enable_parser_fallback:
            if browser_error is exc:
                raise
            raise browser_error from exc
        logger.warning(
            "Browser scrape of %s failed (%s: %s); falling back to parser",
            safe_url,
            browser_error.code.value,
            exc,
        )

    try:
        return await fetch_via_http(safe_url, http_fetcher)
    except Exception as exc:
        parser_error = normalize_scrape_error(exc)
        logger.warning(
            "Parser scrape of %s failed (%s: %s)", safe_url, parser_error.code.value, exc
        )
        if parser_error is exc:
            raise
        raise parser_error from exc
