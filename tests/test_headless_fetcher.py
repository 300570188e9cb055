"""Tests for the rendered (Playwright) fetcher with a mocked browser page."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from listing_aggregator.errors import AntiAutomationDetected, FetchError
from listing_aggregator.fetch.headless import HeadlessConfig, RenderedFetcher
from listing_aggregator.schemas.base import FetchMode

URL = "https://casas.trovit.com.co/arriendo-apartamento-bogota"


def started_fetcher(status: int = 200, html: str = "<html><div class='js-listing'></div></html>", **kwargs):
    """A fetcher whose browser session is already open on a mocked page."""
    fetcher = RenderedFetcher("trovit", HeadlessConfig(settle_ms=0), **kwargs)
    page = AsyncMock()
    page.url = URL
    page.goto.return_value = MagicMock(status=status)
    page.content.return_value = html
    fetcher._page = page
    fetcher._context = AsyncMock()
    return fetcher, page


class TestRenderedFetcher:
    """Test navigation, waiting and error mapping."""

    @pytest.mark.asyncio
    async def test_returns_rendered_dom(self):
        fetcher, page = started_fetcher()

        result = await fetcher.fetch(URL)

        assert result.mode is FetchMode.RENDERED
        assert "js-listing" in result.html
        page.goto.assert_awaited_once()
        assert page.goto.call_args.kwargs["wait_until"] == "domcontentloaded"

    @pytest.mark.asyncio
    async def test_waits_for_selector(self):
        fetcher, page = started_fetcher(wait_for_selector=".js-listing")
        await fetcher.fetch(URL)
        page.wait_for_selector.assert_awaited_once()
        assert page.wait_for_selector.call_args.args[0] == ".js-listing"

    @pytest.mark.asyncio
    async def test_blocked_status(self):
        fetcher, _ = started_fetcher(status=429)
        with pytest.raises(AntiAutomationDetected):
            await fetcher.fetch(URL)

    @pytest.mark.asyncio
    async def test_captcha_page(self):
        fetcher, _ = started_fetcher(html="<iframe src='https://geo.captcha-delivery.com/x'></iframe>")
        with pytest.raises(AntiAutomationDetected):
            await fetcher.fetch(URL)

    @pytest.mark.asyncio
    async def test_error_status(self):
        fetcher, _ = started_fetcher(status=500)
        with pytest.raises(FetchError) as exc:
            await fetcher.fetch(URL)
        assert exc.value.status_code == 500

    @pytest.mark.asyncio
    async def test_navigation_timeout(self):
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        fetcher, page = started_fetcher()
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded")
        with pytest.raises(FetchError) as exc:
            await fetcher.fetch(URL)
        assert exc.value.reason == "navigation timeout"

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        fetcher, page = started_fetcher()
        context = fetcher._context

        await fetcher.close()
        await fetcher.close()

        page.close.assert_awaited_once()
        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_releases_browser_after_page_crash(self):
        from playwright.async_api import Error as PlaywrightError

        fetcher, page = started_fetcher()
        browser, driver = AsyncMock(), AsyncMock()
        fetcher._browser, fetcher._playwright = browser, driver
        page.close.side_effect = PlaywrightError("Target page, context or browser has been closed")
        fetcher._context.close.side_effect = PlaywrightError("Target closed")

        await fetcher.close()

        browser.close.assert_awaited_once()
        driver.stop.assert_awaited_once()
        assert fetcher._browser is None and fetcher._playwright is None
