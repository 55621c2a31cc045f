"""Tests for the browser and HTTP page fetchers.

Mocking strategy:
- ``respx`` patches ``httpx`` at the transport layer so no real network calls
  are made by :class:`HttpFetcher`.
- :class:`BrowserFetcher` receives a fake ``playwright_factory`` built from
  the small classes below, so no browser install is needed.  The fakes record
  every call so the navigation sequence and resource cleanup can be asserted.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
import pytest
import respx
from playwright.async_api import Error as PlaywrightError

from backend.scraper.errors import ScrapeError, ScrapeErrorCode
from backend.scraper.fetcher import (
    BROWSER_LOCALE,
    BROWSER_VIEWPORT,
    DEFAULT_USER_AGENT,
    BrowserFetcher,
    HttpFetcher,
)
from backend.scraper.models import FetchedPage

_JOB_URL = "https://www.upwork.com/jobs/~0123456789"
_JOB_HTML = (
    "<html><head><title>Build Billing Dashboard - Upwork</title></head>"
    "<body><h1>Build Billing Dashboard</h1><article><p>Job.</p></article></body></html>"
)
_CHALLENGE_HTML = (
    "<html><head><title>Just a moment...</title></head>"
    "<body>Checking your browser before accessing upwork.com</body></html>"
)


# ---------------------------------------------------------------------------
# Fake Playwright objects
# ---------------------------------------------------------------------------

class FakePage:
    def __init__(
        self,
        *,
        html: str = _JOB_HTML,
        title: str = "Build Billing Dashboard - Upwork",
        final_url: Optional[str] = None,
        challenge_html: Optional[str] = None,
        resolve_after_waits: int = 0,
        goto_error: Optional[Exception] = None,
        load_state_error: Optional[Exception] = None,
        close_error: Optional[Exception] = None,
    ) -> None:
        self.url = "about:blank"
        self.calls: list[tuple[Any, ...]] = []
        self.closed = False
        self._html = html
        self._title = title
        self._final_url = final_url
        self._challenge_html = challenge_html
        self._resolve_after_waits = resolve_after_waits
        self._waits = 0
        self._goto_error = goto_error
        self._load_state_error = load_state_error
        self._close_error = close_error

    def _challenged(self) -> bool:
        return self._challenge_html is not None and self._waits < self._resolve_after_waits

    async def goto(self, url: str, wait_until: str, timeout: int) -> None:
        self.calls.append(("goto", url, wait_until, timeout))
        if self._goto_error:
            raise self._goto_error
        self.url = self._final_url or url

    async def wait_for_timeout(self, ms: int) -> None:
        self.calls.append(("wait_for_timeout", ms))
        self._waits += 1

    async def wait_for_load_state(self, state: str, timeout: int) -> None:
        self.calls.append(("wait_for_load_state", state, timeout))
        if self._load_state_error:
            raise self._load_state_error

    async def title(self) -> str:
        return "Just a moment..." if self._challenged() else self._title

    async def content(self) -> str:
        return self._challenge_html if self._challenged() else self._html

    async def close(self) -> None:
        self.closed = True
        if self._close_error:
            raise self._close_error


class FakeContext:
    def __init__(self, page: FakePage, close_error: Optional[Exception] = None) -> None:
        self.page = page
        self.closed = False
        self._close_error = close_error

    async def new_page(self) -> FakePage:
        return self.page

    async def close(self) -> None:
        self.closed = True
        if self._close_error:
            raise self._close_error


class FakeBrowser:
    def __init__(self, context: FakeContext, close_error: Optional[Exception] = None) -> None:
        self.context = context
        self.context_kwargs: dict[str, Any] = {}
        self.closed = False
        self._close_error = close_error

    async def new_context(self, **kwargs: Any) -> FakeContext:
        self.context_kwargs = kwargs
        return self.context

    async def close(self) -> None:
        self.closed = True
        if self._close_error:
            raise self._close_error


class FakeChromium:
    def __init__(self, browser: FakeBrowser) -> None:
        self.browser = browser
        self.launch_kwargs: dict[str, Any] = {}

    async def launch(self, **kwargs: Any) -> FakeBrowser:
        self.launch_kwargs = kwargs
        return self.browser


class FakePlaywright:
    def __init__(self, browser: FakeBrowser) -> None:
        self.chromium = FakeChromium(browser)

    async def __aenter__(self) -> "FakePlaywright":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


def _make_fetcher(page: FakePage, **kwargs: Any) -> tuple[BrowserFetcher, FakePlaywright]:
    context = FakeContext(page, close_error=kwargs.pop("context_close_error", None))
    browser = FakeBrowser(context, close_error=kwargs.pop("browser_close_error", None))
    pw = FakePlaywright(browser)
    options = {
        "headless": True,
        "navigation_timeout_ms": 30000,
        "settle_ms": 1200,
        "challenge_wait_ms": 7000,
    }
    options.update(kwargs)
    return BrowserFetcher(playwright_factory=lambda: pw, **options), pw


def _assert_all_closed(pw: FakePlaywright) -> None:
    browser = pw.chromium.browser
    assert browser.context.page.closed
    assert browser.context.closed
    assert browser.closed


# ---------------------------------------------------------------------------
# BrowserFetcher
# ---------------------------------------------------------------------------

class TestBrowserFetcher:
    async def test_fetches_rendered_page(self) -> None:
        page = FakePage()
        fetcher, pw = _make_fetcher(page)

        fetched = await fetcher.fetch(_JOB_URL)

        assert fetched == FetchedPage(
            url=_JOB_URL, html=_JOB_HTML, title="Build Billing Dashboard - Upwork"
        )
        assert fetcher.mode == "playwright"
        assert pw.chromium.launch_kwargs == {"headless": True}
        assert pw.chromium.browser.context_kwargs == {
            "user_agent": DEFAULT_USER_AGENT,
            "viewport": BROWSER_VIEWPORT,
            "locale": BROWSER_LOCALE,
        }
        assert page.calls == [
            ("goto", _JOB_URL, "domcontentloaded", 30000),
            ("wait_for_timeout", 1200),
        ]
        _assert_all_closed(pw)

    async def test_headless_flag_is_configurable(self) -> None:
        fetcher, pw = _make_fetcher(FakePage(), headless=False)
        await fetcher.fetch(_JOB_URL)
        assert pw.chromium.launch_kwargs == {"headless": False}

    async def test_waits_longer_on_challenge_page(self) -> None:
        page = FakePage(challenge_html=_CHALLENGE_HTML, resolve_after_waits=2)
        fetcher, pw = _make_fetcher(page)

        fetched = await fetcher.fetch(_JOB_URL)

        assert page.calls == [
            ("goto", _JOB_URL, "domcontentloaded", 30000),
            ("wait_for_timeout", 1200),
            ("wait_for_timeout", 7000),
            ("wait_for_load_state", "domcontentloaded", 15000),
        ]
        assert fetched.html == _JOB_HTML
        _assert_all_closed(pw)

    async def test_challenge_load_state_timeout_is_capped_by_navigation_timeout(self) -> None:
        page = FakePage(challenge_html=_CHALLENGE_HTML, resolve_after_waits=2)
        fetcher, _ = _make_fetcher(page, navigation_timeout_ms=5000)
        await fetcher.fetch(_JOB_URL)
        assert ("wait_for_load_state", "domcontentloaded", 5000) in page.calls

    async def test_challenge_load_state_error_is_swallowed(self) -> None:
        page = FakePage(
            challenge_html=_CHALLENGE_HTML,
            resolve_after_waits=10,
            load_state_error=PlaywrightError("Timeout 15000ms exceeded"),
        )
        fetcher, pw = _make_fetcher(page)

        fetched = await fetcher.fetch(_JOB_URL)

        assert fetched.html == _CHALLENGE_HTML
        assert fetched.title == "Just a moment..."
        _assert_all_closed(pw)

    async def test_rejects_redirect_to_foreign_host(self) -> None:
        page = FakePage(final_url="https://malicious.example/login")
        fetcher, pw = _make_fetcher(page)

        with pytest.raises(ScrapeError) as exc_info:
            await fetcher.fetch(_JOB_URL)

        assert exc_info.value.code is ScrapeErrorCode.UNSUPPORTED_DOMAIN
        _assert_all_closed(pw)

    async def test_navigation_error_propagates_and_cleans_up(self) -> None:
        page = FakePage(goto_error=PlaywrightError("net::ERR_CONNECTION_RESET"))
        fetcher, pw = _make_fetcher(page)

        with pytest.raises(PlaywrightError):
            await fetcher.fetch(_JOB_URL)

        _assert_all_closed(pw)

    async def test_close_errors_are_swallowed(self) -> None:
        page = FakePage(close_error=PlaywrightError("Target closed"))
        fetcher, pw = _make_fetcher(
            page,
            context_close_error=RuntimeError("context gone"),
            browser_close_error=RuntimeError("browser gone"),
        )

        fetched = await fetcher.fetch(_JOB_URL)

        assert fetched.url == _JOB_URL
        _assert_all_closed(pw)

    async def test_close_errors_do_not_mask_navigation_error(self) -> None:
        nav_error = PlaywrightError("Timeout 30000ms exceeded")
        page = FakePage(goto_error=nav_error, close_error=RuntimeError("close failed"))
        fetcher, pw = _make_fetcher(page, browser_close_error=RuntimeError("browser gone"))

        with pytest.raises(PlaywrightError) as exc_info:
            await fetcher.fetch(_JOB_URL)

        assert exc_info.value is nav_error
        _assert_all_closed(pw)


# ---------------------------------------------------------------------------
# HttpFetcher
# ---------------------------------------------------------------------------

class TestHttpFetcher:
    async def test_fetches_html(self) -> None:
        with respx.mock:
            route = respx.get(_JOB_URL).mock(return_value=httpx.Response(200, html=_JOB_HTML))
            fetched = await HttpFetcher(timeout=5).fetch(_JOB_URL)

        assert fetched == FetchedPage(url=_JOB_URL, html=_JOB_HTML, title=None)
        request = route.calls.last.request
        assert request.headers["User-Agent"] == DEFAULT_USER_AGENT
        assert request.headers["Accept-Language"] == "en-US,en;q=0.9"

    async def test_follows_redirect_within_upwork(self) -> None:
        final_url = "https://www.upwork.com/freelance-jobs/apply/Build-Billing_~0123456789/"
        with respx.mock:
            respx.get(_JOB_URL).mock(
                return_value=httpx.Response(301, headers={"Location": final_url})
            )
            respx.get(final_url).mock(return_value=httpx.Response(200, html=_JOB_HTML))
            fetched = await HttpFetcher(timeout=5).fetch(_JOB_URL)

        assert fetched.url == final_url

    async def test_rejects_redirect_to_foreign_host(self) -> None:
        with respx.mock:
            respx.get(_JOB_URL).mock(
                return_value=httpx.Response(
                    302, headers={"Location": "https://malicious.example/jobs"}
                )
            )
            respx.get("https://malicious.example/jobs").mock(
                return_value=httpx.Response(200, html=_JOB_HTML)
            )
            with pytest.raises(ScrapeError) as exc_info:
                await HttpFetcher(timeout=5).fetch(_JOB_URL)

        assert exc_info.value.code is ScrapeErrorCode.UNSUPPORTED_DOMAIN

    async def test_redirect_limit(self) -> None:
        with respx.mock:
            respx.get(_JOB_URL).mock(
                return_value=httpx.Response(302, headers={"Location": _JOB_URL})
            )
            with pytest.raises(httpx.TooManyRedirects):
                await HttpFetcher(timeout=5).fetch(_JOB_URL)

    async def test_rejects_non_html_response(self) -> None:
        with respx.mock:
            respx.get(_JOB_URL).mock(return_value=httpx.Response(200, json={"job": 1}))
            with pytest.raises(ScrapeError) as exc_info:
                await HttpFetcher(timeout=5).fetch(_JOB_URL)

        assert exc_info.value.code is ScrapeErrorCode.SCRAPE_FAILED

    async def test_missing_content_type_is_accepted(self) -> None:
        with respx.mock:
            respx.get(_JOB_URL).mock(
                return_value=httpx.Response(200, content=_JOB_HTML.encode("utf-8"))
            )
            fetched = await HttpFetcher(timeout=5).fetch(_JOB_URL)

        assert "Build Billing Dashboard" in fetched.html

    async def test_http_error_status_raises(self) -> None:
        with respx.mock:
            respx.get(_JOB_URL).mock(return_value=httpx.Response(404, html="Not Found"))
            with pytest.raises(httpx.HTTPStatusError):
                await HttpFetcher(timeout=5).fetch(_JOB_URL)

    async def test_network_error_propagates(self) -> None:
        with respx.mock:
            respx.get(_JOB_URL).mock(side_effect=httpx.ConnectError("connection refused"))
            with pytest.raises(httpx.ConnectError):
                await HttpFetcher(timeout=5).fetch(_JOB_URL)
