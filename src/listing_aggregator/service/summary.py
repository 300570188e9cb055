"""Aggregate statistics over a search result."""
from __future__ import annotations

import math
from collections import Counter
from collections.abc import Sequence

from pydantic import BaseModel, Field

from listing_aggregator.models.listing import StandardListing

UNSPECIFIED_NEIGHBORHOOD = "unspecified"

# (lower inclusive, upper exclusive, label) on total_price in COP
PRICE_BUCKETS: tuple[tuple[int, float, str], ...] = (
    (0, 2_000_000, "< $2M"),
    (2_000_000, 3_000_000, "$2M - $3M"),
    (3_000_000, 4_000_000, "$3M - $4M"),
    (4_000_000, 5_000_000, "$4M - $5M"),
    (5_000_000, math.inf, "> $5M"),
)


class PriceBucket(BaseModel):
    range: str
    count: int
    percentage: int


class SearchSummary(BaseModel):
    total_found: int = 0
    average_price: int = 0
    average_price_per_m2: int = Field(default=0, description="Over listings with a known area")
    average_area: int = Field(default=0, description="Over listings with a known area")
    source_breakdown: dict[str, int] = Field(default_factory=dict)
    neighborhood_breakdown: dict[str, int] = Field(default_factory=dict)
    price_distribution: list[PriceBucket] = Field(default_factory=list)


def _mean(values: Sequence[int]) -> int:
    return round(sum(values) / len(values)) if values else 0


def price_distribution(listings: Sequence[StandardListing]) -> list[PriceBucket]:
    total = len(listings)
    buckets = []
    for low, high, label in PRICE_BUCKETS:
        count = sum(1 for listing in listings if low <= listing.total_price < high)
        if count:
            buckets.append(PriceBucket(range=label, count=count, percentage=round(count / total * 100)))
    return buckets


def build_summary(listings: Sequence[StandardListing], providers: Sequence[str]) -> SearchSummary:
    """Summary over the full (unpaginated) result; every active provider appears in the breakdown."""
    with_area = [listing for listing in listings if listing.area > 0]
    sources: dict[str, int] = {provider_id: 0 for provider_id in providers}
    for listing in listings:
        sources[listing.provider_id] = sources.get(listing.provider_id, 0) + 1
    neighborhoods = Counter(
        listing.location.neighborhood or UNSPECIFIED_NEIGHBORHOOD for listing in listings
    )
    return SearchSummary(
        total_found=len(listings),
        average_price=_mean([listing.price for listing in listings]),
        average_price_per_m2=_mean([listing.price_per_m2 for listing in with_area]),
        average_area=_mean([listing.area for listing in with_area]),
        source_breakdown=sources,
        neighborhood_breakdown=dict(neighborhoods.most_common()),
        price_distribution=price_distribution(listings),
    )
