"""Rendered fetch through a headless Chromium session (Playwright).

One session belongs to one provider run: it is opened on first use and must
be closed on every exit path, including cancellation by the provider timeout.

Usage:
    async with RenderedFetcher("trovit", wait_for_selector=".js-listing") as fetcher:
        page = await fetcher.fetch(url)
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from listing_aggregator.errors import AntiAutomationDetected, FetchError
from listing_aggregator.fetch.base import FetchedPage, detect_block
from listing_aggregator.fetch.user_agents import DEFAULT_USER_AGENTS
from listing_aggregator.logging import get_logger
from listing_aggregator.schemas.base import FetchMode

# Resource types not needed to read listing markup
BLOCKED_RESOURCE_TYPES = frozenset({"image", "media", "font"})


@dataclass
class HeadlessConfig:
    """Configuration for headless browser sessions."""
    headless: bool = True
    timeout_ms: int = 30000
    settle_ms: int = 2000
    wait_for_selector_ms: int = 15000
    viewport_width: int = 1366
    viewport_height: int = 768
    user_agent: str = DEFAULT_USER_AGENTS[0]
    locale: str = "es-CO"
    block_resources: frozenset[str] = field(default_factory=lambda: BLOCKED_RESOURCE_TYPES)


class RenderedFetcher:
    """Loads pages in Chromium, lets scripts run, and returns the resulting DOM."""

    mode = FetchMode.RENDERED

    def __init__(
        self,
        provider_id: str,
        config: HeadlessConfig | None = None,
        *,
        wait_for_selector: str | None = None,
        logger=None,
    ) -> None:
        self.provider_id = provider_id
        self.config = config or HeadlessConfig()
        self.wait_for_selector = wait_for_selector
        self.log = logger or get_logger(__name__)
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    async def start(self) -> None:
        if self._context is not None:
            return
        try:
            from playwright.async_api import async_playwright
        except ImportError:
            self.log.error("playwright_missing", hint="pip install playwright && playwright install chromium")
            raise
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.config.headless)
            self._context = await self._browser.new_context(
                viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
                user_agent=self.config.user_agent,
                locale=self.config.locale,
            )
            if self.config.block_resources:
                await self._context.route("**/*", self._route)
            self._page = await self._context.new_page()
        except BaseException:
            await self.close()
            raise
        self.log.debug("browser_started", provider=self.provider_id)

    async def _route(self, route) -> None:
        if route.request.resource_type in self.config.block_resources:
            await route.abort()
        else:
            await route.continue_()

    async def fetch(self, url: str) -> FetchedPage:
        from playwright.async_api import Error as PlaywrightError
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        await self.start()
        page = self._page
        try:
            response = await page.goto(url, wait_until="domcontentloaded", timeout=self.config.timeout_ms)
            if self.wait_for_selector:
                try:
                    await page.wait_for_selector(self.wait_for_selector, timeout=self.config.wait_for_selector_ms)
                except PlaywrightTimeoutError:
                    self.log.info("wait_for_selector_timeout", provider=self.provider_id, selector=self.wait_for_selector)
            else:
                await asyncio.sleep(self.config.settle_ms / 1000)
            html = await page.content()
        except PlaywrightTimeoutError as e:
            raise FetchError(self.provider_id, url, "navigation timeout") from e
        except PlaywrightError as e:
            raise FetchError(self.provider_id, url, f"browser error: {e.message}") from e

        status = response.status if response is not None else 200
        reason = detect_block(status, html)
        if reason:
            self.log.warning("anti_automation_detected", provider=self.provider_id, url=url, reason=reason)
            raise AntiAutomationDetected(self.provider_id, url, reason, status)
        if status >= 400:
            raise FetchError(self.provider_id, url, f"HTTP {status}", status)
        return FetchedPage(url=page.url, status_code=status, html=html, mode=self.mode)

    async def close(self) -> None:
        """Release page, context, browser and driver; safe to call repeatedly.

        Each step runs even when an earlier one fails (a crashed page or a
        context torn down by a cancelled navigation), so the Chromium process
        and the driver are always released.
        """
        from playwright.async_api import Error as PlaywrightError

        page, context, browser, playwright = self._page, self._context, self._browser, self._playwright
        self._page = self._context = self._browser = self._playwright = None
        steps = (
            ("page", page.close if page is not None else None),
            ("context", context.close if context is not None else None),
            ("browser", browser.close if browser is not None else None),
            ("driver", playwright.stop if playwright is not None else None),
        )
        for resource, release in steps:
            if release is None:
                continue
            try:
                await release()
            except PlaywrightError as e:
                self.log.warning("browser_close_failed", provider=self.provider_id, resource=resource, error=e.message)
        if browser is not None:
            self.log.debug("browser_closed", provider=self.provider_id)

    async def __aenter__(self) -> RenderedFetcher:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False
