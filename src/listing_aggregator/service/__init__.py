"""Search orchestration: fan-out, post-filtering, dedup, scoring, summary."""

from listing_aggregator.service.filters import apply_post_filters, is_wildcard_term, matches_neighborhoods
from listing_aggregator.service.search import (
    ProviderRun,
    ProviderStatus,
    SearchResponse,
    SearchService,
    deduplicate,
)
from listing_aggregator.service.summary import PriceBucket, SearchSummary, build_summary

__all__ = [
    "PriceBucket",
    "ProviderRun",
    "ProviderStatus",
    "SearchResponse",
    "SearchService",
    "SearchSummary",
    "apply_post_filters",
    "build_summary",
    "deduplicate",
    "is_wildcard_term",
    "matches_neighborhoods",
]
