"""Metrocuadrado (https://www.metrocuadrado.com)."""
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
    rx,
    with_query,
)

BASE_URL = "https://www.metrocuadrado.com"


def _span(low: int | None, high: int | None, floor: int, width: int) -> str | None:
    if low is None and high is None:
        return None
    low = low if low is not None else floor
    high = high if high is not None else low + width
    return f"{low}-{high}"


def build_url(criteria: Criteria) -> str:
    return with_query(
        f"{BASE_URL}/apartamentos/{criteria.operation.slug}/{city_slug(criteria)}/",
        [
            ("habitaciones", _span(criteria.min_rooms, criteria.max_rooms, 1, 2)),
            ("area", _span(criteria.min_area, criteria.max_area, 30, 50)),
            ("precio", f"0-{criteria.max_price}" if criteria.max_price else None),
            ("orden", "relevancia"),
        ],
    )


def metrocuadrado_schema() -> SourceSchema:
    return SourceSchema(
        id="metrocuadrado",
        name="Metrocuadrado",
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
            requires_post_filtering=(
                "min_price",
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
            card_selectors=(".property-card__container", '.property-card:not([class*="__"])'),
            selectors={
                "title": (".property-card__content", ".property-card__detail", ".listing-title", "h3", "h4"),
                "price": (".property-card__detail-price", '[class*="price"]', ".price", ".precio"),
                "area": (".area", ".surface", ".superficie", ".metros", ".m2", '[class*="area"]'),
                "rooms": (".rooms", ".bedrooms", ".habitaciones", ".alcobas", '[class*="habitacion"]'),
                "bathrooms": (".bathrooms", ".banos", '[class*="bathroom"]'),
                "parking": (".parking", ".parqueadero", ".garaje", '[class*="parking"]'),
                "location": (".location", ".address", ".ubicacion", ".direccion", ".barrio"),
                "images": (".property-card__image img", ".property-card__photo img", "img"),
                "link": ('a[href*="/inmueble/"]', ".property-card__container a", ".property-card__content a", "a"),
            },
            regex_patterns={
                "title": rx(r"Apartamento en Arriendo,\s*([^,\n]+)", r"en Arriendo,\s*([^,\n]+)"),
                "price": PRICE_PATTERNS,
                "admin_fee": ADMIN_FEE_PATTERNS,
                "area": AREA_PATTERNS + rx(r"superficie[:\s]*(\d+)"),
                "rooms": ROOM_PATTERNS + rx(r"alcobas[:\s]*(\d+)"),
                "bathrooms": BATHROOM_PATTERNS,
                "parking": PARKING_PATTERNS + rx(r"(\d+)\s*parq"),
                "stratum": STRATUM_PATTERNS,
                "location": rx(r"en\s+([^,\n]+),\s*bogot[aá]"),
            },
            next_page_selectors=(".pagination .next", ".pager .next", ".siguiente", '[aria-label*="siguiente"]'),
        ),
        output_mapping=OutputMapping(
            field_mappings=STANDARD_FIELD_MAPPINGS,
            transformations=STANDARD_TRANSFORMS,
            defaults=default_values("Metrocuadrado"),
        ),
        performance=PerformanceBudget(
            requests_per_minute=25,
            delay_between_requests_ms=2500,
            max_concurrent_requests=2,
            timeout_ms=60_000,
            max_pages=4,
        ),
    )
