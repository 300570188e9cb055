"""Ciencuadras (https://www.ciencuadras.com).

Cards carry no links and no room/bath selectors; those come from the card
text and from the correction hook that rebuilds the listing URL.
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
    RANGE_POST_FILTERS,
    STANDARD_FIELD_MAPPINGS,
    STANDARD_TRANSFORMS,
    STRATUM_PATTERNS,
    city_slug,
    default_values,
    rx,
)

BASE_URL = "https://www.ciencuadras.com"


def build_url(criteria: Criteria) -> str:
    return f"{BASE_URL}/{criteria.operation.slug}/apartamento/{city_slug(criteria)}"


def ciencuadras_schema() -> SourceSchema:
    return SourceSchema(
        id="ciencuadras",
        name="Ciencuadras",
        base_url=BASE_URL,
        input_mapping=InputMapping(
            url_builder=build_url,
            supported_filters=("operation", "property_types", "location.city"),
            requires_post_filtering=RANGE_POST_FILTERS,
        ),
        extraction=ExtractionConfig(
            method=FetchMode.STATIC,
            card_selectors=(".card",),
            selectors={
                "title": (".property-title", ".listing-title", ".inmueble-titulo", "h3", "h4", ".title"),
                "price": (".card__price", ".card__price-big", '[class*="price"]', ".price", ".precio"),
                "area": (".area", ".superficie", ".m2", ".metros", '[class*="area"]'),
                "location": (".location", ".ubicacion", ".direccion", ".address", ".barrio"),
                "images": (".property-image img", ".listing-image img", ".inmueble-foto img", "img"),
            },
            regex_patterns={
                "price": PRICE_PATTERNS,
                "area": AREA_PATTERNS,
                "rooms": rx(r"Habit\.\s*(\d+)", r"habitaciones[:\s]*(\d+)", r"(\d+)\s*habitaci[oó]n"),
                "bathrooms": rx(r"Ba[ñn]os\s*(\d+)") + BATHROOM_PATTERNS,
                "parking": rx(r"Garaje\s*(\d+)") + PARKING_PATTERNS,
                "stratum": STRATUM_PATTERNS,
                "location": rx(r"bogot[aá],\s*([^,\n]+(?:,\s*[^,\n]+)?)"),
            },
            next_page_selectors=(".pagination .next", ".siguiente", '[aria-label*="siguiente"]', ".pager .next"),
            render_capable=True,
        ),
        output_mapping=OutputMapping(
            field_mappings=STANDARD_FIELD_MAPPINGS,
            transformations=STANDARD_TRANSFORMS,
            defaults=default_values("Ciencuadras"),
        ),
        performance=PerformanceBudget(
            requests_per_minute=25,
            delay_between_requests_ms=2500,
            max_concurrent_requests=2,
            timeout_ms=45_000,
            max_pages=4,
        ),
    )
