"""Trovit (https://casas.trovit.com.co).

Results are injected by JavaScript, so the rendered fetch waits for the
listing container before reading the page.
"""
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
    ROOM_PATTERNS,
    STANDARD_FIELD_MAPPINGS,
    STANDARD_TRANSFORMS,
    STRATUM_PATTERNS,
    city_slug,
    default_values,
    rx,
    with_query,
)

BASE_URL = "https://casas.trovit.com.co"


def build_url(criteria: Criteria) -> str:
    city = city_slug(criteria)
    return with_query(
        f"{BASE_URL}/{criteria.operation.slug}-apartamento-{city}",
        [
            ("min_rooms", criteria.min_rooms),
            ("min_size", criteria.min_area),
            ("max_price", criteria.max_price),
            ("what", "apartamento"),
            ("where", city),
        ],
    )


def trovit_schema() -> SourceSchema:
    return SourceSchema(
        id="trovit",
        name="Trovit",
        base_url=BASE_URL,
        input_mapping=InputMapping(
            url_builder=build_url,
            supported_filters=(
                "operation",
                "property_types",
                "location.city",
                "min_rooms",
                "min_area",
                "max_price",
            ),
            requires_post_filtering=(
                "max_rooms",
                "min_bathrooms",
                "max_bathrooms",
                "max_area",
                "min_price",
                "min_parking",
                "max_parking",
                "min_stratum",
                "max_stratum",
                "location.neighborhoods",
            ),
        ),
        extraction=ExtractionConfig(
            method=FetchMode.RENDERED,
            card_selectors=(".js-listing", "article.snippet-listing", ".snippet-listing"),
            selectors={
                "title": (".item_title", ".js-item-title", ".listing-title", "h3", "h4", ".title"),
                "price": (".item_price", ".price", ".precio", '[class*="price"]'),
                "area": (".item_surface", ".surface", ".area", ".superficie", '[class*="area"]'),
                "rooms": (".item_rooms", ".rooms", ".habitaciones", '[class*="room"]'),
                "bathrooms": (".item_bathrooms", ".bathrooms", ".banos", '[class*="bathroom"]'),
                "parking": (".item_parking", ".parking", ".parqueadero", ".garaje"),
                "location": (".item_location", ".location", ".ubicacion", ".address"),
                "images": (".item_image img", ".listing-image img", "img"),
                "link": (".item_link", "a", ".listing-link"),
            },
            regex_patterns={
                "price": PRICE_PATTERNS,
                "area": AREA_PATTERNS + rx(r"superficie[:\s]*(\d+)"),
                "rooms": ROOM_PATTERNS + rx(r"rooms[:\s]*(\d+)"),
                "bathrooms": BATHROOM_PATTERNS,
                "parking": PARKING_PATTERNS,
                "stratum": STRATUM_PATTERNS,
                "location": rx(r"en\s+([^,\n]+),\s*bogot[aá]"),
            },
            next_page_selectors=(".pagination .next", ".js-pagination-next", ".siguiente", '[aria-label*="siguiente"]'),
            wait_for_selector=".js-listing",
        ),
        output_mapping=OutputMapping(
            field_mappings=STANDARD_FIELD_MAPPINGS,
            transformations=STANDARD_TRANSFORMS,
            defaults=default_values("Trovit"),
        ),
        performance=PerformanceBudget(
            requests_per_minute=20,
            delay_between_requests_ms=3000,
            max_concurrent_requests=1,
            timeout_ms=45_000,
            max_pages=3,
        ),
    )
