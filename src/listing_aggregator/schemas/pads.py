"""PADS (https://pads.com.co)."""
from __future__ import annotations

from listing_aggregator.models.criteria import Criteria, Operation
from listing_aggregator.schemas.base import (
    ExtractionConfig,
    FetchMode,
    InputMapping,
    OutputMapping,
    PerformanceBudget,
    SourceSchema,
)
from listing_aggregator.schemas.common import (
    RANGE_POST_FILTERS,
    STANDARD_FIELD_MAPPINGS,
    STANDARD_TRANSFORMS,
    STRATUM_PATTERNS,
    default_values,
    rx,
)

BASE_URL = "https://pads.com.co"


def build_url(criteria: Criteria) -> str:
    section = "inmuebles-en-arriendo" if criteria.operation is Operation.RENT else "inmuebles-en-venta"
    return f"{BASE_URL}/{section}"


def pads_schema() -> SourceSchema:
    return SourceSchema(
        id="pads",
        name="PADS",
        base_url=BASE_URL,
        input_mapping=InputMapping(
            url_builder=build_url,
            supported_filters=("operation", "property_types", "location.city"),
            requires_post_filtering=RANGE_POST_FILTERS,
        ),
        extraction=ExtractionConfig(
            method=FetchMode.RENDERED,
            card_selectors=(".listings-grid > div", ".listings-grid"),
            selectors={
                "title": (".property-title", ".listing-title", ".apartment-title", "h3", "h4", ".title"),
                "price": (".price", ".rent", ".precio", ".listing-price", '[class*="price"]'),
                "area": (".area", ".sqft", ".superficie", ".size", '[class*="area"]'),
                "rooms": (".rooms", ".bedrooms", ".habitaciones", ".bed"),
                "bathrooms": (".bathrooms", ".bath", ".banos"),
                "parking": (".parking", ".garage", ".parqueadero", ".garaje"),
                "location": (".location", ".address", ".ubicacion", ".neighborhood", '[class*="location"]'),
                "images": (".property-image img", ".listing-image img", ".apartment-image img", "img"),
                "link": ('a[href*="/propiedades/"]', "a"),
            },
            regex_patterns={
                "price": rx(r"COP\s*([\d.,]+)", r"\$\s*[\d.,]+", r"[\d.,]+\s*/month"),
                "area": rx(r"(\d+)\s*m[²2]", r"(\d+)\s*metros"),
                "rooms": rx(r"(\d+)\s*Alc\.", r"(\d+)\s*(?:habitaci[oó]n|alcoba)(?:es|s)?", r"(\d+)\s*bed(?:room)?s?"),
                "bathrooms": rx(r"(\d+)\s*ba[ñn]os?", r"(\d+)\s*bath(?:room)?s?"),
                "parking": rx(r"Parq\.\s*(\d+)", r"(\d+)\s*(?:parking|garage|parqueadero)s?"),
                "stratum": STRATUM_PATTERNS,
                "location": rx(r"([^,\n]+),\s*Bogot[aá]"),
            },
            next_page_selectors=(".pagination .next", ".siguiente", '[aria-label*="next"]', ".pager .next"),
        ),
        output_mapping=OutputMapping(
            field_mappings=STANDARD_FIELD_MAPPINGS,
            transformations=STANDARD_TRANSFORMS,
            defaults=default_values("PADS"),
        ),
        performance=PerformanceBudget(
            requests_per_minute=15,
            delay_between_requests_ms=4000,
            max_concurrent_requests=1,
            timeout_ms=60_000,
            max_pages=2,
        ),
    )
