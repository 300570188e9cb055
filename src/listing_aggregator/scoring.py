"""Scorer boundary.

Ranking formulas live outside this package; the search service only needs a
pure ``score(listing, criteria) -> float``. Higher scores sort first.
"""
from __future__ import annotations

from collections.abc import Callable

from listing_aggregator.models.criteria import Criteria
from listing_aggregator.models.listing import StandardListing

Scorer = Callable[[StandardListing, Criteria], float]


def neutral_score(listing: StandardListing, criteria: Criteria) -> float:
    """Keeps merge order: every listing scores the same."""
    return 0.0
