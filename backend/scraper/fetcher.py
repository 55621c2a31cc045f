"""Page fetchers: a headless Playwright browser and a plain httpx fallback.

Both implement :class:`Fetcher` and only *fetch*: they return the final URL
and HTML of the page and leave extraction to the orchestrator, so the
protection-aware post-processing exists once.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Protocol

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from backend.config import settings
from backend.scraper.challenge import looks_like_challenge
from backend.scraper.errors import ScrapeError, ScrapeErrorCode
from backend.scraper.models import ExtractionMode, FetchedPage
from backend.scraper.urls import assert_allowed_upwork_host

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36"
)
BROWSER_VIEWPORT = {"width": 1440, "height": 1024}
BROWSER_LOCALE = "en-US"

# Upper bound for the extra readiness wait after a challenge page.
CHALLENGE_LOAD_STATE_CAP_MS = 15000

_DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept-Language": "en-US,en;q=0.9",
}


class Fetcher(Protocol):
    mode: ExtractionMode

    async def fetch(self, url: str) -> FetchedPage: ...


# ---------------------------------------------------------------------------
# Browser-driven fetch
# ---------------------------------------------------------------------------

async def _safe_title(page: Any) -> str:
    try:
        return await page.title()
    except PlaywrightError as exc:
        logger.debug("Could not read page title: %s", exc)
        return ""


async def _safe_content(page: Any) -> str:
    try:
        return await page.content()
    except PlaywrightError as exc:
        logger.debug("Could not read page content: %s", exc)
        return ""


async def _close_quietly(resource: Any, label: str) -> None:
    """Close a Playwright page/context/browser; never raise."""
    if resource is None:
        return
    try:
        await resource.close()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Ignoring error while closing %s: %s", label, exc)


class BrowserFetcher:
    """Render a job page in headless Chromium.

    ``playwright_factory`` defaults to :func:`playwright.async_api.async_playwright`;
    tests inject a fake so no browser install is needed.
    """

    mode: ExtractionMode = "playwright"

    def __init__(
        self,
        *,
        headless: Optional[bool] = None,
        navigation_timeout_ms: Optional[int] = None,
        settle_ms: Optional[int] = None,
        challenge_wait_ms: Optional[int] = None,
        playwright_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.headless = settings.headless if headless is None else headless
        self.navigation_timeout_ms = navigation_timeout_ms or settings.navigation_timeout_ms
        self.settle_ms = settle_ms if settle_ms is not None else settings.settle_ms
        self.challenge_wait_ms = (
            challenge_wait_ms if challenge_wait_ms is not None else settings.challenge_wait_ms
        )
        self._playwright_factory = playwright_factory or async_playwright

    async def _page_looks_like_challenge(self, page: Any) -> bool:
        return looks_like_challenge(await _safe_content(page), await _safe_title(page))

    async def fetch(self, url: str) -> FetchedPage:
        async with self._playwright_factory() as pw:
            browser = await pw.chromium.launch(headless=self.headless)
            context = None
            page = None
            try:
                context = await browser.new_context(
                    user_agent=DEFAULT_USER_AGENT,
                    viewport=BROWSER_VIEWPORT,
                    locale=BROWSER_LOCALE,
                )
                page = await context.new_page()

                await page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=self.navigation_timeout_ms,
                )
                await page.wait_for_timeout(self.settle_ms)

                if await self._page_looks_like_challenge(page):
                    logger.info(
                        "Challenge page detected for %s, waiting %d ms", url, self.challenge_wait_ms
                    )
                    await page.wait_for_timeout(self.challenge_wait_ms)
                    try:
                        await page.wait_for_load_state(
                            "domcontentloaded",
                            timeout=min(self.navigation_timeout_ms, CHALLENGE_LOAD_STATE_CAP_MS),
                        )
                    except PlaywrightError as exc:
                        logger.debug("Load-state wait after challenge failed: %s", exc)

                final_url = page.url
                assert_allowed_upwork_host(final_url)
                title = await _safe_title(page)
                html = await page.content()
                return FetchedPage(url=final_url, html=html, title=title)
            finally:
                await _close_quietly(page, "page")
                await _close_quietly(context, "context")
                await _close_quietly(browser, "browser")


# ---------------------------------------------------------------------------
# HTTP-driven fetch
# ---------------------------------------------------------------------------

class HttpFetcher:
    """Fetch a job page with a single GET; no JavaScript rendering."""

    mode: ExtractionMode = "parser"

    def __init__(
        self,
        *,
        timeout: Optional[float] = None,
        max_redirects: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.navigation_timeout
        self.max_redirects = max_redirects
        self._transport = transport

    async def fetch(self, url: str) -> FetchedPage:
        """GET *url* and return the HTML of wherever it finally landed.

        Raises:
            httpx.HTTPError: On network failure, too many redirects or a 4xx/5xx status.
            ScrapeError: ``UNSUPPORTED_DOMAIN`` after an off-site redirect,
                ``SCRAPE_FAILED`` for a non-HTML response.
        """
        async with httpx.AsyncClient(
            headers=_DEFAULT_HEADERS,
            timeout=self.timeout,
            follow_redirects=True,
            max_redirects=self.max_redirects,
            transport=self._transport,
        ) as client:
            response = await client.get(url)

        final_url = str(response.url)
        assert_allowed_upwork_host(final_url)
        response.raise_for_status()

        content_type = response.headers.get("content-type", "").lower()
        if content_type and "text/html" not in content_type:
            raise ScrapeError(
                ScrapeErrorCode.SCRAPE_FAILED,
                "Could not extract job details from non-HTML response",
            )

        return FetchedPage(url=final_url, html=response.text)
