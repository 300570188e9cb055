"""Extraction engine: executes a FetchPlan for one provider.

States per run::

    INIT -> FETCHING(n) -> EXTRACTING(n) -> NEXT_PAGE | DONE | ESCALATE | FAILED

Pages are fetched strictly in order, each behind a rate-limiter slot. A
static page 1 without records escalates once to the rendered strategy when
the provider can render. A fetch error on page 1 fails the run; later page
errors stop pagination and keep what was already extracted.
"""
from __future__ import annotations

import math
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum

from bs4 import BeautifulSoup, Tag

from listing_aggregator.errors import (
    AntiAutomationDetected,
    ExtractionMismatch,
    FetchError,
    PageFetchError,
    ProviderFetchError,
)
from listing_aggregator.extraction.extractors import FieldChain, build_chains
from listing_aggregator.extraction.hooks import apply_hooks
from listing_aggregator.fetch.base import PageFetcher
from listing_aggregator.fetch.headless import HeadlessConfig, RenderedFetcher
from listing_aggregator.fetch.static import StaticFetcher
from listing_aggregator.logging import get_logger
from listing_aggregator.mappers.input_mapper import FetchPlan
from listing_aggregator.models.listing import RawListingRecord
from listing_aggregator.net import RateLimiter
from listing_aggregator.schemas.base import FetchMode, SourceSchema

REQUIRED_FIELDS = ("title", "price")

FetcherFactory = Callable[[SourceSchema, FetchMode], PageFetcher]


class EngineState(str, Enum):
    INIT = "init"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    NEXT_PAGE = "next_page"
    ESCALATE = "escalate"
    DONE = "done"
    FAILED = "failed"


class FetchStrategy:
    """Static or rendered, with a single one-way escalation."""

    def __init__(self, initial: FetchMode, render_capable: bool) -> None:
        self.mode = initial
        self.render_capable = render_capable
        self.escalated = False

    def can_escalate(self) -> bool:
        return self.mode is FetchMode.STATIC and self.render_capable and not self.escalated

    def escalate(self) -> FetchMode:
        if not self.can_escalate():
            raise RuntimeError(f"Cannot escalate from {self.mode.value}")
        self.mode = FetchMode.RENDERED
        self.escalated = True
        return self.mode


@dataclass
class ExtractionStats:
    cards_seen: int = 0
    cards_discarded: int = 0
    field_hits: Counter[str] = field(default_factory=Counter)
    field_misses: Counter[str] = field(default_factory=Counter)

    def as_dict(self) -> dict:
        return {
            "cards_seen": self.cards_seen,
            "cards_discarded": self.cards_discarded,
            "field_hits": dict(self.field_hits),
            "field_misses": dict(self.field_misses),
        }


@dataclass
class PageExtraction:
    records: list[RawListingRecord]
    has_next: bool
    cards_seen: int


@dataclass
class EngineResult:
    provider_id: str
    records: list[RawListingRecord] = field(default_factory=list)
    pages_fetched: int = 0
    escalated: bool = False
    stopped_reason: str = ""
    stats: ExtractionStats = field(default_factory=ExtractionStats)


def default_fetcher_factory(headless: HeadlessConfig | None = None, logger=None) -> FetcherFactory:
    """Fetchers sized from the schema's budget; rendered ones share a base HeadlessConfig."""
    base = headless or HeadlessConfig()

    def create(schema: SourceSchema, mode: FetchMode) -> PageFetcher:
        if mode is FetchMode.STATIC:
            return StaticFetcher(schema.id, timeout=schema.performance.timeout_seconds, logger=logger)
        config = replace(
            base,
            timeout_ms=schema.performance.timeout_ms,
            settle_ms=schema.extraction.settle_ms if schema.extraction.settle_ms is not None else base.settle_ms,
        )
        return RenderedFetcher(
            schema.id, config, wait_for_selector=schema.extraction.wait_for_selector, logger=logger
        )

    return create


class ExtractionEngine:
    """Runs the fetch/extract/paginate loop for one provider schema."""

    def __init__(
        self,
        schema: SourceSchema,
        limiter: RateLimiter,
        *,
        fetcher_factory: FetcherFactory | None = None,
        max_pages: int | None = None,
        logger=None,
    ) -> None:
        self.schema = schema
        self.limiter = limiter
        self.fetcher_factory = fetcher_factory or default_fetcher_factory(logger=logger)
        self.max_pages = max_pages
        self.log = (logger or get_logger(__name__)).bind(provider=schema.id)
        self.chains: dict[str, FieldChain] = dict(build_chains(schema.extraction))
        self.state = EngineState.INIT

    def _transition(self, state: EngineState, **context) -> None:
        self.state = state
        self.log.debug("engine_state", state=state.value, **context)

    def page_cap(self, plan: FetchPlan) -> int:
        cap = self.max_pages if self.max_pages is not None else math.inf
        return int(min(plan.performance.max_pages, cap))

    async def run(self, plan: FetchPlan) -> EngineResult:
        result = EngineResult(provider_id=self.schema.id)
        strategy = FetchStrategy(plan.method, self.schema.extraction.render_capable)
        fetchers: dict[FetchMode, PageFetcher] = {}
        cap = self.page_cap(plan)
        start = time.time()
        self._transition(EngineState.INIT, url=plan.search_url, mode=strategy.mode.value, page_cap=cap)

        try:
            page = 1
            result.stopped_reason = "page_cap"
            while page <= cap:
                url = self.schema.input_mapping.page_url(plan.search_url, page)
                try:
                    extraction = await self._fetch_page(url, page, strategy.mode, fetchers, result.stats)
                    if page == 1 and not extraction.records and strategy.can_escalate():
                        self._transition(EngineState.ESCALATE, page=page, cards_seen=extraction.cards_seen)
                        strategy.escalate()
                        result.escalated = True
                        self.log.info("engine_escalated", url=url)
                        extraction = await self._fetch_page(url, page, strategy.mode, fetchers, result.stats)
                except FetchError as e:
                    if page == 1:
                        self._transition(EngineState.FAILED, page=page, reason=e.reason)
                        if isinstance(e, ProviderFetchError):
                            raise
                        raise ProviderFetchError(e.provider_id, e.url, e.reason, e.status_code) from e
                    page_error = PageFetchError(e.provider_id, e.url, e.reason, page, e.status_code)
                    self.log.warning(
                        "page_fetch_failed",
                        page=page,
                        error=str(page_error),
                        blocked=isinstance(e, AntiAutomationDetected),
                        kept=len(result.records),
                    )
                    result.stopped_reason = "page_error"
                    break

                result.pages_fetched = page
                if not extraction.records:
                    result.stopped_reason = "empty_page"
                    break
                result.records.extend(extraction.records)
                if not extraction.has_next:
                    result.stopped_reason = "no_next_page"
                    break
                self._transition(EngineState.NEXT_PAGE, page=page, records=len(result.records))
                page += 1
        finally:
            for fetcher in fetchers.values():
                await fetcher.close()

        self._transition(
            EngineState.DONE,
            pages=result.pages_fetched,
            records=len(result.records),
            stopped=result.stopped_reason,
        )
        self.log.info(
            "provider_extracted",
            records=len(result.records),
            pages=result.pages_fetched,
            escalated=result.escalated,
            stopped=result.stopped_reason,
            elapsed_ms=round((time.time() - start) * 1000),
            **result.stats.as_dict(),
        )
        return result

    async def _fetch_page(
        self,
        url: str,
        page: int,
        mode: FetchMode,
        fetchers: dict[FetchMode, PageFetcher],
        stats: ExtractionStats,
    ) -> PageExtraction:
        fetcher = fetchers.get(mode)
        if fetcher is None:
            fetcher = fetchers[mode] = self.fetcher_factory(self.schema, mode)
        self._transition(EngineState.FETCHING, page=page, mode=mode.value, url=url)
        async with self.limiter.slot():
            fetched = await fetcher.fetch(url)
        self._transition(EngineState.EXTRACTING, page=page)
        extraction = self.extract_page(fetched.html, stats)
        self.log.info(
            "page_fetched",
            page=page,
            mode=mode.value,
            cards=extraction.cards_seen,
            records=len(extraction.records),
            has_next=extraction.has_next,
        )
        return extraction

    def extract_page(self, html: str, stats: ExtractionStats | None = None) -> PageExtraction:
        stats = stats if stats is not None else ExtractionStats()
        soup = BeautifulSoup(html, "html.parser")
        cards = self.find_cards(soup)
        records: list[RawListingRecord] = []
        for card in cards:
            stats.cards_seen += 1
            record = self.extract_card(card, stats)
            if all(record.get(name) for name in REQUIRED_FIELDS):
                records.append(record)
            else:
                stats.cards_discarded += 1
        has_next = any(soup.select_one(sel) is not None for sel in self.schema.extraction.next_page_selectors)
        return PageExtraction(records=records, has_next=has_next, cards_seen=len(cards))

    def find_cards(self, soup: BeautifulSoup) -> list[Tag]:
        """Nodes of the first card selector that matches anything."""
        for selector in self.schema.extraction.card_selectors:
            cards = soup.select(selector)
            if cards:
                return cards
        return []

    def extract_card(self, card: Tag, stats: ExtractionStats | None = None) -> RawListingRecord:
        text = card.get_text("\n", strip=True)
        record: RawListingRecord = {}
        for name, chain in self.chains.items():
            try:
                record[name] = chain.require(card, text)
            except ExtractionMismatch:
                if stats is not None:
                    stats.field_misses[name] += 1
                continue
            if stats is not None:
                stats.field_hits[name] += 1
        return apply_hooks(self.schema.id, record, card, text)
