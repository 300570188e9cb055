"""Plain HTTP fetch (no script execution) with httpx."""
from __future__ import annotations

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from listing_aggregator.errors import AntiAutomationDetected, FetchError
from listing_aggregator.fetch.base import FetchedPage, detect_block
from listing_aggregator.fetch.user_agents import UserAgentRotator, browser_headers
from listing_aggregator.logging import get_logger
from listing_aggregator.schemas.base import FetchMode

# Transient failures worth another attempt
RETRYABLE = (httpx.TimeoutException, httpx.TransportError, httpx.HTTPStatusError)


class StaticFetcher:
    """GET a page and return its HTML.

    The client is created lazily and owned by the fetcher unless one is
    passed in (tests inject a client backed by ``httpx.MockTransport``).
    """

    mode = FetchMode.STATIC

    def __init__(
        self,
        provider_id: str,
        *,
        timeout: float = 30.0,
        attempts: int = 3,
        user_agents: UserAgentRotator | None = None,
        client: httpx.AsyncClient | None = None,
        logger=None,
    ) -> None:
        self.provider_id = provider_id
        self.timeout = timeout
        self.attempts = attempts
        self.user_agents = user_agents or UserAgentRotator()
        self.log = logger or get_logger(__name__)
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def fetch(self, url: str) -> FetchedPage:
        client = self._get_client()

        @retry(
            reraise=True,
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential_jitter(initial=0.5, max=4.0),
            retry=retry_if_exception_type(RETRYABLE),
        )
        async def _do() -> httpx.Response:
            resp = await client.get(url, headers=browser_headers(self.user_agents.next()))
            if resp.status_code >= 500:
                resp.raise_for_status()
            return resp

        try:
            resp = await _do()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                self.provider_id, url, f"HTTP {e.response.status_code}", e.response.status_code
            ) from e
        except httpx.TimeoutException as e:
            raise FetchError(self.provider_id, url, "timeout") from e
        except httpx.RequestError as e:
            raise FetchError(self.provider_id, url, f"request error: {e}") from e

        html = resp.text
        reason = detect_block(resp.status_code, html)
        if reason:
            self.log.warning("anti_automation_detected", provider=self.provider_id, url=url, reason=reason)
            raise AntiAutomationDetected(self.provider_id, url, reason, resp.status_code)
        if resp.status_code >= 400:
            raise FetchError(self.provider_id, url, f"HTTP {resp.status_code}", resp.status_code)

        self.log.debug("page_downloaded", provider=self.provider_id, url=url, bytes=len(html))
        return FetchedPage(url=str(resp.url), status_code=resp.status_code, html=html, mode=self.mode)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> StaticFetcher:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False
