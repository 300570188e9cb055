"""MercadoLibre Inmuebles (https://inmuebles.mercadolibre.com.co)."""
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
    PRICE_PATTERNS,
    RANGE_POST_FILTERS,
    STANDARD_FIELD_MAPPINGS,
    STANDARD_TRANSFORMS,
    STRATUM_PATTERNS,
    city_slug,
    default_values,
    rx,
)
from listing_aggregator.schemas.transforms import bounded_count, reject_room_rentals

BASE_URL = "https://inmuebles.mercadolibre.com.co"

# Attribute rows hold area, rooms and bathrooms in one string
_ATTRIBUTES = (".ui-search-item__attributes", ".item-attributes", '[class*="attributes"]')


def build_url(criteria: Criteria) -> str:
    return f"{BASE_URL}/apartamentos/{criteria.operation.slug}/{city_slug(criteria)}/"


def page_url(search_url: str, page: int) -> str:
    """Listing offsets in the path: page 2 is ``_Desde_49``."""
    if page <= 1:
        return search_url
    return f"{search_url.rstrip('/')}/_Desde_{(page - 1) * 48 + 1}"


def mercadolibre_schema() -> SourceSchema:
    return SourceSchema(
        id="mercadolibre",
        name="MercadoLibre",
        base_url=BASE_URL,
        input_mapping=InputMapping(
            url_builder=build_url,
            supported_filters=("operation", "property_types", "location.city"),
            requires_post_filtering=RANGE_POST_FILTERS,
            page_url=page_url,
        ),
        extraction=ExtractionConfig(
            method=FetchMode.RENDERED,
            card_selectors=(".ui-search-layout__item", ".ui-search-result__wrapper"),
            selectors={
                "title": (
                    ".ui-search-item__title",
                    ".ui-search-item-title",
                    ".poly-component__title",
                    ".ui-search-result__content-wrapper h2",
                    "h2",
                    "h3",
                ),
                "price": (".ui-search-price__part", ".andes-money-amount__fraction", '[class*="price"]'),
                "area": _ATTRIBUTES,
                "rooms": _ATTRIBUTES,
                "bathrooms": _ATTRIBUTES,
                "parking": _ATTRIBUTES,
                "location": (".ui-search-item__location", ".poly-component__location", '[class*="location"]'),
                "images": (".ui-search-result-image img", ".ui-search-item__image img", "img"),
                "link": ("a.ui-search-link", ".ui-search-result__content a", 'a[href*="/MCO-"]', "a"),
            },
            regex_patterns={
                "title": rx(
                    r"Apartamento en arriendo(.+?)(?:Por\s+[A-Z\s]+)?\$[\d.,]+",
                    r"Apartamento en arriendo(.+?)\$[\d.,]+",
                ),
                "price": PRICE_PATTERNS,
                "area": rx(r"(\d{1,3})\s*m[²2]\s*cubiertos", r"(\d{1,3})\s*m[²2]"),
                "rooms": rx(r"(\d)\s*habitaciones", r"(\d)\s*hab(?:itaci[oó]n)?(?:es)?"),
                "bathrooms": rx(r"(\d)\s*ba[ñn]os?"),
                "parking": rx(r"(\d)\s*(?:parqueadero|garaje)s?"),
                "stratum": STRATUM_PATTERNS,
            },
            next_page_selectors=(
                ".andes-pagination__button--next",
                ".ui-search-pagination__button--next",
                '[aria-label*="Siguiente"]',
            ),
        ),
        output_mapping=OutputMapping(
            field_mappings=STANDARD_FIELD_MAPPINGS,
            transformations={
                **STANDARD_TRANSFORMS,
                "title": reject_room_rentals,
                "parking": bounded_count(5),
            },
            defaults=default_values("MercadoLibre"),
        ),
        performance=PerformanceBudget(
            requests_per_minute=20,
            delay_between_requests_ms=3000,
            max_concurrent_requests=1,
            timeout_ms=70_000,
            max_pages=3,
        ),
    )
