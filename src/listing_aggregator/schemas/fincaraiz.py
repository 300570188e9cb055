"""Fincaraiz (https://www.fincaraiz.com.co)."""
from __future__ import annotations

from listing_aggregator.models.criteria import Criteria
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
    BATHROOM_PATTERNS,
    PARKING_PATTERNS,
    PRICE_PATTERNS,
    ROOM_PATTERNS,
    STANDARD_FIELD_MAPPINGS,
    STANDARD_TRANSFORMS,
    STRATUM_PATTERNS,
    city_slug,
    default_values,
    slugify,
    with_query,
)

BASE_URL = "https://www.fincaraiz.com.co"


def build_url(criteria: Criteria) -> str:
    property_type = slugify(criteria.property_types[0]) if criteria.property_types else "apartamento"
    return with_query(
        f"{BASE_URL}/{criteria.operation.slug}/{property_type}/{city_slug(criteria)}",
        [
            ("min_rooms", criteria.min_rooms),
            ("max_rooms", criteria.max_rooms),
            ("min_area", criteria.min_area),
            ("max_area", criteria.max_area),
            ("max_price", criteria.max_price),
            ("currency", "COP" if criteria.max_price else None),
        ],
    )


def fincaraiz_schema() -> SourceSchema:
    return SourceSchema(
        id="fincaraiz",
        name="Fincaraiz",
        base_url=BASE_URL,
        input_mapping=InputMapping(
            url_builder=build_url,
            supported_filters=(
                "operation",
                "property_types",
                "min_rooms",
                "max_rooms",
                "min_area",
                "max_area",
                "max_price",
                "location.city",
            ),
            # The site treats its own filters loosely; re-check ranges after extraction
            requires_post_filtering=(
                "min_price",
                "max_price",
                "min_rooms",
                "max_rooms",
                "min_area",
                "max_area",
                "min_bathrooms",
                "max_bathrooms",
                "min_parking",
                "max_parking",
                "min_stratum",
                "max_stratum",
                "location.neighborhoods",
            ),
        ),
        extraction=ExtractionConfig(
            method=FetchMode.RENDERED,
            card_selectors=(".listingCard", ".listingsWrapper"),
            selectors={
                "title": ("h2", '[class*="title"]', ".property-title", ".listing-title", "h3", "h4"),
                "price": ('[class*="price"]', ".price", ".precio", ".listing-price", ".valor"),
                "area": (
                    '[data-testid="property-area"]',
                    ".area",
                    ".superficie",
                    ".m2",
                    '[class*="area"]',
                ),
                "rooms": ('[data-testid="property-rooms"]', ".rooms", ".habitaciones", ".alcobas"),
                "bathrooms": ('[data-testid="property-bathrooms"]', ".bathrooms", ".banos"),
                "parking": (".parking", ".parqueadero", ".garaje", '[class*="parking"]'),
                "location": (
                    '[data-testid="property-location"]',
                    ".location",
                    ".ubicacion",
                    ".direccion",
                    ".address",
                ),
                "images": (
                    '[data-testid="property-image"] img',
                    ".property-image img",
                    ".MuiCardMedia-img",
                    "img",
                ),
                "link": ('a[href*="/inmueble/"]', 'a[href*="/propiedad/"]', 'a[href*="fincaraiz.com"]', "a"),
            },
            regex_patterns={
                "price": PRICE_PATTERNS,
                "admin_fee": ADMIN_FEE_PATTERNS,
                "area": AREA_PATTERNS,
                "rooms": ROOM_PATTERNS,
                "bathrooms": BATHROOM_PATTERNS,
                "parking": PARKING_PATTERNS,
                "stratum": STRATUM_PATTERNS,
            },
            next_page_selectors=(
                ".pagination .next",
                '[aria-label="Next"]',
                ".siguiente",
                '.MuiPagination-item[aria-label*="next"]',
            ),
        ),
        output_mapping=OutputMapping(
            field_mappings=STANDARD_FIELD_MAPPINGS,
            transformations=STANDARD_TRANSFORMS,
            defaults=default_values("Fincaraiz"),
        ),
        performance=PerformanceBudget(
            requests_per_minute=30,
            delay_between_requests_ms=2000,
            max_concurrent_requests=2,
            timeout_ms=45_000,
            max_pages=5,
        ),
    )
