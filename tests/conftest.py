"""Shared fixtures: a fast provider schema, card HTML builders and a scripted fetcher."""

import asyncio
from collections.abc import Callable

import pytest
import structlog

from listing_aggregator.errors import FetchError
from listing_aggregator.fetch.base import FetchedPage
from listing_aggregator.net import RateLimiter, RateLimitConfig
from listing_aggregator.schemas.base import (
    ExtractionConfig,
    FetchMode,
    InputMapping,
    OutputMapping,
    PerformanceBudget,
    SourceSchema,
)
from listing_aggregator.schemas.common import (
    ADMIN_FEE_PATTERNS,
    AREA_PATTERNS,
    PRICE_PATTERNS,
    RANGE_POST_FILTERS,
    ROOM_PATTERNS,
    STANDARD_FIELD_MAPPINGS,
    STANDARD_TRANSFORMS,
    STRATUM_PATTERNS,
    default_values,
)
from listing_aggregator.schemas.registry import SchemaRegistry


def make_schema(
    provider_id: str = "testsite",
    *,
    method: FetchMode = FetchMode.STATIC,
    render_capable: bool = False,
    max_pages: int = 5,
    requires_post_filtering: tuple[str, ...] = RANGE_POST_FILTERS,
    transformations: dict | None = None,
) -> SourceSchema:
    """Schema shaped like the bundled ones but with a budget tests can run at full speed."""
    base_url = f"https://{provider_id}.example.com"
    return SourceSchema(
        id=provider_id,
        name=provider_id.title(),
        base_url=base_url,
        input_mapping=InputMapping(
            url_builder=lambda criteria: f"{base_url}/{criteria.operation.slug}",
            supported_filters=("operation", "property_types", "location.city"),
            requires_post_filtering=requires_post_filtering,
        ),
        extraction=ExtractionConfig(
            method=method,
            card_selectors=(".card", ".result"),
            selectors={
                "title": ("h2", ".title"),
                "price": (".price",),
                "area": (".area",),
                "rooms": (".rooms",),
                "location": (".location",),
                "images": ("img",),
                "link": ("a",),
            },
            regex_patterns={
                "price": PRICE_PATTERNS,
                "admin_fee": ADMIN_FEE_PATTERNS,
                "area": AREA_PATTERNS,
                "rooms": ROOM_PATTERNS,
                "stratum": STRATUM_PATTERNS,
            },
            next_page_selectors=(".next",),
            render_capable=render_capable,
        ),
        output_mapping=OutputMapping(
            field_mappings=STANDARD_FIELD_MAPPINGS,
            transformations=transformations if transformations is not None else STANDARD_TRANSFORMS,
            defaults=default_values(provider_id.title()),
        ),
        performance=PerformanceBudget(
            requests_per_minute=6000,
            delay_between_requests_ms=0,
            max_concurrent_requests=4,
            timeout_ms=5000,
            max_pages=max_pages,
        ),
    )


def make_registry(*provider_ids: str, **schema_kwargs) -> SchemaRegistry:
    return SchemaRegistry(
        (pid, (lambda pid=pid: make_schema(pid, **schema_kwargs))) for pid in provider_ids
    )


def card_html(
    title: str | None = "Apartamento en Chapinero",
    price: str | None = "$ 2.500.000",
    *,
    area: str | None = "72 m²",
    rooms: str | None = "3 habitaciones",
    location: str | None = "Chapinero Alto, Bogotá",
    link: str | None = "/inmueble/1",
    image: str | None = "https://img.example.com/1.jpg",
    extra: str = "",
) -> str:
    parts = ['<article class="card">']
    if title is not None:
        parts.append(f"<h2>{title}</h2>")
    if price is not None:
        parts.append(f'<span class="price">{price}</span>')
    if area is not None:
        parts.append(f'<span class="area">{area}</span>')
    if rooms is not None:
        parts.append(f'<span class="rooms">{rooms}</span>')
    if location is not None:
        parts.append(f'<p class="location">{location}</p>')
    if image is not None:
        parts.append(f'<img src="{image}">')
    if link is not None:
        parts.append(f'<a href="{link}">Ver</a>')
    if extra:
        parts.append(extra)
    parts.append("</article>")
    return "".join(parts)


def page_html(cards: list[str], *, has_next: bool = False) -> str:
    nav = '<a class="next" href="?page=next">Siguiente</a>' if has_next else ""
    return f"<html><body><main>{''.join(cards)}</main>{nav}</body></html>"


def numbered_cards(start: int, count: int, **kwargs) -> list[str]:
    return [
        card_html(title=f"Apartamento {n}", link=f"/inmueble/{n}", **kwargs)
        for n in range(start, start + count)
    ]


# Page content: HTML, an exception to raise, or a callable producing either
PageScript = str | Exception | Callable[[str], str]


class FakeFetcher:
    """PageFetcher that serves scripted pages and records what it was asked for."""

    def __init__(self, mode: FetchMode, pages: dict[str, PageScript], default: PageScript = "", delay: float = 0.0):
        self.mode = mode
        self.pages = pages
        self.default = default
        self.delay = delay
        self.requested: list[str] = []
        self.closed = False

    async def fetch(self, url: str) -> FetchedPage:
        self.requested.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        script = self.pages.get(url, self.default)
        if isinstance(script, Exception):
            raise script
        html = script(url) if callable(script) else script
        return FetchedPage(url=url, status_code=200, html=html, mode=self.mode)

    async def close(self) -> None:
        self.closed = True


class FakeFetcherFactory:
    """FetcherFactory that builds one FakeFetcher per (provider, mode)."""

    def __init__(self):
        self.scripts: dict[tuple[str, FetchMode], dict[str, PageScript]] = {}
        self.delays: dict[str, float] = {}
        self.created: list[FakeFetcher] = []

    def script(
        self, provider_id: str, mode: FetchMode, pages: dict[str, PageScript], *, delay: float = 0.0
    ) -> None:
        self.scripts[(provider_id, mode)] = pages
        if delay:
            self.delays[provider_id] = delay

    def __call__(self, schema: SourceSchema, mode: FetchMode) -> FakeFetcher:
        pages = self.scripts.get((schema.id, mode), {})
        fetcher = FakeFetcher(mode, pages, delay=self.delays.get(schema.id, 0.0))
        self.created.append(fetcher)
        return fetcher

    def for_mode(self, mode: FetchMode) -> list[FakeFetcher]:
        return [f for f in self.created if f.mode is mode]


def fetch_error(provider_id: str, url: str, reason: str = "HTTP 500", status: int | None = 500) -> FetchError:
    return FetchError(provider_id, url, reason, status)


@pytest.fixture
def schema() -> SourceSchema:
    return make_schema()


@pytest.fixture
def fast_limiter() -> RateLimiter:
    return RateLimiter(RateLimitConfig(requests_per_minute=6000, min_interval=0.0, max_concurrent=4))


@pytest.fixture
def fetchers() -> FakeFetcherFactory:
    return FakeFetcherFactory()


@pytest.fixture(autouse=True)
def reset_structlog():
    """Entry points configure structlog against the stream of the moment; undo it per test."""
    yield
    structlog.reset_defaults()
