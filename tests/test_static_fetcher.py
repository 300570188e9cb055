"""Tests for the httpx static fetcher using a mock transport."""

import httpx
import pytest

from listing_aggregator.errors import AntiAutomationDetected, FetchError
from listing_aggregator.fetch.base import PageFetcher, detect_block
from listing_aggregator.fetch.static import StaticFetcher
from listing_aggregator.fetch.user_agents import DEFAULT_USER_AGENTS, UserAgentRotator, browser_headers
from listing_aggregator.schemas.base import FetchMode

URL = "https://www.fincaraiz.com.co/arriendo/apartamento/bogota"


def fetcher_for(handler, attempts: int = 1) -> StaticFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StaticFetcher("fincaraiz", attempts=attempts, client=client)


class TestStaticFetcher:
    """Test status handling and block detection."""

    @pytest.mark.asyncio
    async def test_ok(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["ua"] = request.headers["user-agent"]
            seen["lang"] = request.headers["accept-language"]
            return httpx.Response(200, text="<html><div class='listingCard'>x</div></html>")

        fetcher = fetcher_for(handler)
        page = await fetcher.fetch(URL)

        assert page.status_code == 200
        assert page.mode is FetchMode.STATIC
        assert "listingCard" in page.html
        assert seen["ua"] in DEFAULT_USER_AGENTS
        assert seen["lang"].startswith("es-CO")

    @pytest.mark.asyncio
    async def test_forbidden_is_anti_automation(self):
        fetcher = fetcher_for(lambda request: httpx.Response(403, text="Forbidden"))
        with pytest.raises(AntiAutomationDetected) as exc:
            await fetcher.fetch(URL)
        assert exc.value.status_code == 403

    @pytest.mark.asyncio
    async def test_challenge_page_is_anti_automation(self):
        html = "<html><body><div id='cf-challenge'>Checking your browser</div></body></html>"
        fetcher = fetcher_for(lambda request: httpx.Response(200, text=html))
        with pytest.raises(AntiAutomationDetected):
            await fetcher.fetch(URL)

    @pytest.mark.asyncio
    async def test_not_found_is_fetch_error(self):
        fetcher = fetcher_for(lambda request: httpx.Response(404, text="nope"))
        with pytest.raises(FetchError) as exc:
            await fetcher.fetch(URL)
        assert not isinstance(exc.value, AntiAutomationDetected)
        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_server_error_retried_then_succeeds(self):
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            if calls["n"] == 1:
                return httpx.Response(503, text="busy")
            return httpx.Response(200, text="<html>ok</html>")

        fetcher = fetcher_for(handler, attempts=2)
        page = await fetcher.fetch(URL)

        assert page.html == "<html>ok</html>"
        assert calls["n"] == 2

    @pytest.mark.asyncio
    async def test_transport_error_becomes_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError) as exc:
            await fetcher_for(handler).fetch(URL)
        assert "request error" in exc.value.reason

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        async with StaticFetcher("fincaraiz", client=client):
            pass
        assert not client.is_closed
        await client.aclose()

    def test_satisfies_fetcher_protocol(self):
        assert isinstance(StaticFetcher("fincaraiz"), PageFetcher)


class TestBlockDetection:
    """Test anti-automation markers."""

    @pytest.mark.parametrize("status", [403, 429])
    def test_block_status(self, status):
        assert detect_block(status, "") == f"HTTP {status}"

    def test_captcha_marker(self):
        assert detect_block(200, "<p>Please verify you are human</p>") is not None

    def test_normal_page(self):
        assert detect_block(200, "<html><main>Apartamentos</main></html>") is None


class TestUserAgents:
    """Test user agent rotation."""

    def test_rotation_cycles(self):
        rotator = UserAgentRotator()
        first = [rotator.next() for _ in range(len(DEFAULT_USER_AGENTS))]
        assert first == list(DEFAULT_USER_AGENTS)
        assert rotator.next() == DEFAULT_USER_AGENTS[0]

    def test_headers(self):
        headers = browser_headers("UA/1.0")
        assert headers["User-Agent"] == "UA/1.0"
        assert "text/html" in headers["Accept"]
