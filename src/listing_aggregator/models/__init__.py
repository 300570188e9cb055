"""Data models for criteria and canonical listings."""

from listing_aggregator.models.criteria import (
    FILTER_ALIASES,
    FILTER_KEYS,
    Criteria,
    LocationCriteria,
    Operation,
    Preferences,
    parse_criteria,
)
from listing_aggregator.models.listing import (
    NUMERIC_FIELDS,
    Coordinates,
    ListingLocation,
    RawListingRecord,
    StandardListing,
    canonical_url,
)

__all__ = [
    "FILTER_ALIASES",
    "FILTER_KEYS",
    "NUMERIC_FIELDS",
    "Coordinates",
    "Criteria",
    "ListingLocation",
    "LocationCriteria",
    "Operation",
    "Preferences",
    "RawListingRecord",
    "StandardListing",
    "canonical_url",
    "parse_criteria",
]
