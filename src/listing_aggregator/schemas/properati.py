"""Properati (https://www.properati.com.co)."""
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
    AREA_PATTERNS,
    BATHROOM_PATTERNS,
    PARKING_PATTERNS,
    PRICE_PATTERNS,
    RANGE_POST_FILTERS,
    ROOM_PATTERNS,
    STANDARD_FIELD_MAPPINGS,
    STANDARD_TRANSFORMS,
    STRATUM_PATTERNS,
    default_values,
    slugify,
)

BASE_URL = "https://www.properati.com.co"


def build_url(criteria: Criteria) -> str:
    first = slugify(criteria.property_types[0]) if criteria.property_types else "apartamento"
    property_type = "apartamento" if first.startswith("apartamento") else "casa"
    return f"{BASE_URL}/s/bogota-d-c-colombia/{property_type}/{criteria.operation.slug}"


def properati_schema() -> SourceSchema:
    return SourceSchema(
        id="properati",
        name="Properati",
        base_url=BASE_URL,
        input_mapping=InputMapping(
            url_builder=build_url,
            supported_filters=("operation", "property_types", "location.city"),
            requires_post_filtering=RANGE_POST_FILTERS,
        ),
        extraction=ExtractionConfig(
            method=FetchMode.STATIC,
            card_selectors=(".listings .item", ".listings [data-url]", ".property-item", '[class*="listing"]'),
            selectors={
                "title": (".property-title", ".listing-title", ".card-title", "h3", "h4", ".title"),
                "price": (".price", ".precio", ".listing-price", ".property-price", '[class*="price"]'),
                "area": (".area", ".superficie", ".m2", ".size", '[class*="area"]'),
                "rooms": (".rooms", ".habitaciones", ".alcobas", ".bedrooms", '[class*="room"]'),
                "bathrooms": (".bathrooms", ".banos", '[class*="bathroom"]'),
                "parking": (".parking", ".parqueadero", ".garaje", '[class*="parking"]'),
                "location": (".location", ".ubicacion", ".address", ".neighborhood", ".barrio"),
                "images": (".property-image img", ".listing-image img", ".card-image img", "img"),
                "link": ("[data-url]", "a.title", 'a[href*="/detalle/"]', "a.property-link", "a"),
            },
            regex_patterns={
                "price": PRICE_PATTERNS,
                "area": AREA_PATTERNS,
                "rooms": ROOM_PATTERNS,
                "bathrooms": BATHROOM_PATTERNS,
                "parking": PARKING_PATTERNS,
                "stratum": STRATUM_PATTERNS,
            },
            next_page_selectors=(".pagination .next", ".siguiente", '[aria-label*="siguiente"]', ".pager .next"),
            render_capable=True,
        ),
        output_mapping=OutputMapping(
            field_mappings=STANDARD_FIELD_MAPPINGS,
            transformations=STANDARD_TRANSFORMS,
            defaults=default_values("Properati"),
        ),
        performance=PerformanceBudget(
            requests_per_minute=20,
            delay_between_requests_ms=3000,
            max_concurrent_requests=1,
            timeout_ms=50_000,
            max_pages=3,
        ),
    )
