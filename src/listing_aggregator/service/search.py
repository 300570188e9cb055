"""Search service: concurrent multi-provider fan-out with isolated failures.

Every active provider runs as its own task (plan -> extract -> normalize ->
post-filter) under a hard wall-clock budget. ``asyncio.wait_for`` cancels a
provider that overruns, so its in-flight request or browser session is torn
down instead of running on in the background. A failed, blocked or timed-out
provider contributes zero listings; the search itself only fails on invalid
criteria or unknown explicit provider ids, before any scraping starts.
"""
from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from listing_aggregator.cache import ListingCache, criteria_hash
from listing_aggregator.config import SearchConfig
from listing_aggregator.errors import AntiAutomationDetected, InvalidCriteriaError
from listing_aggregator.extraction.engine import ExtractionEngine, FetcherFactory, default_fetcher_factory
from listing_aggregator.fetch.headless import HeadlessConfig
from listing_aggregator.logging import get_logger
from listing_aggregator.mappers.input_mapper import CriteriaMapper
from listing_aggregator.mappers.output_mapper import OutputNormalizer
from listing_aggregator.models.criteria import Criteria, parse_criteria
from listing_aggregator.models.listing import StandardListing
from listing_aggregator.net import RateLimiterRegistry
from listing_aggregator.schemas.base import SourceSchema
from listing_aggregator.schemas.registry import SchemaRegistry, default_registry
from listing_aggregator.scoring import Scorer, neutral_score
from listing_aggregator.service.filters import apply_post_filters
from listing_aggregator.service.summary import SearchSummary, build_summary


class ProviderStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    BLOCKED = "blocked"
    TIMEOUT = "timeout"


class ProviderRun(BaseModel):
    """Outcome of one provider inside one search."""

    provider_id: str
    status: ProviderStatus = ProviderStatus.OK
    raw_records: int = 0
    normalized: int = 0
    rejected: int = 0
    kept: int = Field(default=0, description="Listings left after post-filters")
    pages_fetched: int = 0
    escalated: bool = False
    stopped_reason: str = ""
    elapsed_ms: int = 0
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)


class SearchResponse(BaseModel):
    listings: list[StandardListing]
    total: int
    page: int
    limit: int
    summary: SearchSummary
    providers: dict[str, ProviderRun] = Field(default_factory=dict)
    scores: dict[str, float] = Field(default_factory=dict, description="Score by listing id")
    execution_time_ms: int = 0
    from_cache: bool = False


def deduplicate(listings: Iterable[StandardListing]) -> list[StandardListing]:
    """Keep the first listing per canonical URL, or per (title, price) when the URL is empty."""
    seen: set[tuple[str, ...]] = set()
    unique: list[StandardListing] = []
    for listing in listings:
        key = listing.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(listing)
    return unique


class SearchService:
    """Runs searches across every registered provider (or an explicit subset)."""

    def __init__(
        self,
        registry: SchemaRegistry | None = None,
        *,
        config: SearchConfig | None = None,
        scorer: Scorer = neutral_score,
        cache: ListingCache | None = None,
        limiters: RateLimiterRegistry | None = None,
        fetcher_factory: FetcherFactory | None = None,
        normalizer: OutputNormalizer | None = None,
        logger=None,
    ) -> None:
        self.registry = registry or default_registry()
        self.config = config or SearchConfig()
        self.scorer = scorer
        self.cache = cache
        self.limiters = limiters or RateLimiterRegistry()
        self.log = logger or get_logger(__name__)
        self.fetcher_factory = fetcher_factory or default_fetcher_factory(
            HeadlessConfig(headless=self.config.headless, settle_ms=self.config.settle_ms), logger=self.log
        )
        self.mapper = CriteriaMapper(self.registry, logger=self.log)
        self.normalizer = normalizer or OutputNormalizer(logger=self.log)

    async def search(
        self,
        criteria: Criteria | Mapping[str, Any],
        page: int = 1,
        limit: int | None = None,
    ) -> SearchResponse:
        start = time.time()
        criteria = parse_criteria(criteria)
        limit = self.config.default_limit if limit is None else limit
        if page < 1:
            raise InvalidCriteriaError(f"page must be >= 1, got {page}")
        if not 1 <= limit <= self.config.max_limit:
            raise InvalidCriteriaError(f"limit must be between 1 and {self.config.max_limit}, got {limit}")
        schemas = self.registry.resolve(criteria.sources)

        key = criteria_hash(criteria)
        runs: dict[str, ProviderRun] = {}
        cached = self.cache.load_cached(key) if self.cache is not None else None
        if cached is not None:
            listings = cached
            self.log.info("search_cache_hit", criteria_hash=key[:12], listings=len(listings))
        else:
            runs, merged = await self._run_providers(criteria, schemas)
            listings = deduplicate(merged)
            if len(listings) < len(merged):
                self.log.info("duplicates_removed", before=len(merged), after=len(listings))
            if self.cache is not None:
                self.cache.save(key, listings)

        scores = {listing.id: float(self.scorer(listing, criteria)) for listing in listings}
        ranked = sorted(listings, key=lambda listing: scores[listing.id], reverse=True)
        offset = (page - 1) * limit
        window = ranked[offset:offset + limit]

        response = SearchResponse(
            listings=window,
            total=len(ranked),
            page=page,
            limit=limit,
            summary=build_summary(ranked, [schema.id for schema in schemas]),
            providers=runs,
            scores={listing.id: scores[listing.id] for listing in window},
            execution_time_ms=round((time.time() - start) * 1000),
            from_cache=cached is not None,
        )
        self.log.info(
            "search_completed",
            total=response.total,
            page=page,
            returned=len(window),
            providers={pid: run.status.value for pid, run in runs.items()},
            elapsed_ms=response.execution_time_ms,
        )
        return response

    async def _run_providers(
        self, criteria: Criteria, schemas: list[SourceSchema]
    ) -> tuple[dict[str, ProviderRun], list[StandardListing]]:
        results = await asyncio.gather(*(self._run_with_timeout(criteria, schema) for schema in schemas))
        runs = {run.provider_id: run for run, _ in results}
        merged = [listing for _, listings in results for listing in listings]
        return runs, merged

    async def _run_with_timeout(
        self, criteria: Criteria, schema: SourceSchema
    ) -> tuple[ProviderRun, list[StandardListing]]:
        start = time.time()
        log = self.log.bind(provider=schema.id)
        log.info("provider_started")
        try:
            run, listings = await asyncio.wait_for(
                self._run_provider(criteria, schema),
                timeout=self.config.provider_timeout,
            )
        except (asyncio.TimeoutError, TimeoutError):
            run = ProviderRun(
                provider_id=schema.id,
                status=ProviderStatus.TIMEOUT,
                error=f"timeout after {self.config.provider_timeout}s",
            )
            listings = []
            log.warning("provider_timeout", timeout_seconds=self.config.provider_timeout)
        except AntiAutomationDetected as e:
            run = ProviderRun(provider_id=schema.id, status=ProviderStatus.BLOCKED, error=str(e))
            listings = []
            log.warning("provider_blocked", error=str(e))
        except Exception as e:
            run = ProviderRun(provider_id=schema.id, status=ProviderStatus.FAILED, error=str(e))
            listings = []
            log.warning("provider_failed", error=str(e), error_type=type(e).__name__)
        run.elapsed_ms = round((time.time() - start) * 1000)
        return run, listings

    async def _run_provider(
        self, criteria: Criteria, schema: SourceSchema
    ) -> tuple[ProviderRun, list[StandardListing]]:
        plan = self.mapper.build_plan(criteria, schema)
        report = self.mapper.validate(criteria, schema.id)
        engine = ExtractionEngine(
            schema,
            self.limiters.get(schema.id, schema.performance),
            fetcher_factory=self.fetcher_factory,
            max_pages=self.config.max_pages,
            logger=self.log,
        )
        result = await engine.run(plan)
        normalized = self.normalizer.normalize_many(result.records, schema)
        kept = apply_post_filters(normalized.listings, plan.post_filters, criteria, logger=self.log)
        run = ProviderRun(
            provider_id=schema.id,
            raw_records=len(result.records),
            normalized=len(normalized.listings),
            rejected=normalized.rejected,
            kept=len(kept),
            pages_fetched=result.pages_fetched,
            escalated=result.escalated,
            stopped_reason=result.stopped_reason,
            warnings=report.warnings,
        )
        return run, kept
