"""Post-filters: criteria a provider URL cannot express, checked after normalization."""
from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from listing_aggregator.logging import get_logger
from listing_aggregator.mappers.location import fold
from listing_aggregator.models.criteria import Criteria
from listing_aggregator.models.listing import StandardListing

Predicate = Callable[[StandardListing, Any, Criteria], bool]


def is_wildcard_term(term: str) -> bool:
    """Single characters and punctuation-only terms ("*", "...") mean "anywhere"."""
    cleaned = term.strip()
    return len(cleaned) <= 1 or re.fullmatch(r"[^\w\s]+", cleaned) is not None


def _searchable_text(listing: StandardListing) -> list[str]:
    loc = listing.location
    return [fold(v) for v in (loc.neighborhood, loc.address, loc.city, listing.title, listing.description)]


def matches_neighborhoods(listing: StandardListing, terms: Iterable[str]) -> bool:
    """Accent-insensitive substring match of any term in the listing's text fields."""
    fields = _searchable_text(listing)
    neighborhood = fold(listing.location.neighborhood)
    for term in terms:
        needle = fold(term)
        if any(needle in text for text in fields if text):
            return True
        # "Chapinero Alto" requested, listing says "Chapinero"
        if len(neighborhood) > 2 and neighborhood in needle:
            return True
    return False


def _at_least(attr: str) -> Predicate:
    return lambda listing, bound, criteria: getattr(listing, attr) >= bound


def _at_most(attr: str) -> Predicate:
    return lambda listing, bound, criteria: getattr(listing, attr) <= bound


def _max_price(listing: StandardListing, bound: int, criteria: Criteria) -> bool:
    price = listing.price if criteria.allow_admin_overage else listing.total_price
    return price <= bound


def _city(listing: StandardListing, city: str, criteria: Criteria) -> bool:
    """Listings with no city or address information are kept."""
    loc = listing.location
    if not loc.city and not loc.address:
        return True
    needle = fold(city)
    return needle in fold(loc.city) or needle in fold(loc.address)


def _neighborhoods(listing: StandardListing, terms: list[str], criteria: Criteria) -> bool:
    return matches_neighborhoods(listing, terms)


def _property_types(listing: StandardListing, types: list[str], criteria: Criteria) -> bool:
    return fold(listing.property_type) in {fold(t) for t in types}


PREDICATES: dict[str, Predicate] = {
    "min_rooms": _at_least("rooms"),
    "max_rooms": _at_most("rooms"),
    "min_bathrooms": _at_least("bathrooms"),
    "max_bathrooms": _at_most("bathrooms"),
    "min_parking": _at_least("parking"),
    "max_parking": _at_most("parking"),
    "min_area": _at_least("area"),
    "max_area": _at_most("area"),
    "min_price": _at_least("total_price"),
    "max_price": _max_price,
    "min_stratum": _at_least("stratum"),
    "max_stratum": _at_most("stratum"),
    "location.city": _city,
    "location.neighborhoods": _neighborhoods,
    "property_types": _property_types,
}


def apply_post_filters(
    listings: Iterable[StandardListing],
    post_filters: Mapping[str, Any],
    criteria: Criteria,
    logger=None,
) -> list[StandardListing]:
    log = logger or get_logger(__name__)
    active: list[tuple[str, Predicate, Any]] = []
    for key, value in post_filters.items():
        if key == "location.neighborhoods" and any(is_wildcard_term(t) for t in value):
            log.info("neighborhood_filter_skipped", terms=list(value))
            continue
        predicate = PREDICATES.get(key)
        if predicate is None:
            log.debug("post_filter_unsupported", key=key)
            continue
        active.append((key, predicate, value))

    kept: list[StandardListing] = []
    for listing in listings:
        if all(predicate(listing, value, criteria) for _, predicate, value in active):
            kept.append(listing)
    return kept
