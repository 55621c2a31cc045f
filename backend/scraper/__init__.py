"""Scraper package — Upwork job fetch & detail extraction."""

from backend.scraper.challenge import looks_like_challenge
from backend.scraper.errors import (
    HTTP_STATUS_BY_CODE,
    ScrapeError,
    ScrapeErrorCode,
    normalize_scrape_error,
)
from backend.scraper.extractor import extract_from_html
from backend.scraper.models import FetchedPage, ScrapeResult
from backend.scraper.orchestrator import fetch_via_browser, fetch_via_http, scrape_job_url
from backend.scraper.urls import validate_upwork_url

__all__ = [
    "scrape_job_url",
    "validate_upwork_url",
    "normalize_scrape_error",
    "fetch_via_browser",
    "fetch_via_http",
    "extract_from_html",
    "looks_like_challenge",
    "ScrapeError",
    "ScrapeErrorCode",
    "HTTP_STATUS_BY_CODE",
    "ScrapeResult",
    "FetchedPage",
]
