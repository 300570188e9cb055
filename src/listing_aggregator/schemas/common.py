"""Building blocks shared by the bundled provider schemas."""
from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from listing_aggregator.schemas.transforms import (
    as_list,
    digits_to_int,
    parse_price,
    rounded_area,
    web_images,
)

if TYPE_CHECKING:
    from listing_aggregator.models.criteria import Criteria


def rx(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.I) for p in patterns)


PRICE_PATTERNS = rx(r"\$\s*[\d.,]+", r"[\d.,]+\s*pesos", r"precio[:\s]*\$?\s*[\d.,]+")
AREA_PATTERNS = rx(r"(\d+(?:[.,]\d+)?)\s*m[²2]", r"(\d+)\s*metros", r"[áa]rea[:\s]*(\d+)")
ROOM_PATTERNS = rx(
    r"(\d+)\s*(?:hab\b|habitaci[oó]n|habitaciones|alcobas?|dormitorios?)",
    r"habitaciones[:\s]*(\d+)",
)
BATHROOM_PATTERNS = rx(r"(\d+)\s*(?:ba[ñn]os?|bathrooms?)", r"ba[ñn]os[:\s]*(\d+)")
PARKING_PATTERNS = rx(
    r"(\d+)\s*(?:parqueaderos?|garajes?|parking)",
    r"parqueaderos[:\s]*(\d+)",
    r"garajes[:\s]*(\d+)",
)
ADMIN_FEE_PATTERNS = rx(
    r"administraci[oó]n[:\s]*\$?\s*([\d.,]+)",
    r"\badmin\.?[:\s]*\$?\s*([\d.,]+)",
)
STRATUM_PATTERNS = rx(r"estrato[:\s]*(\d)\b", r"\bestr\.?\s*(\d)\b")

STANDARD_FIELD_MAPPINGS: dict[str, str] = {
    "location": "location.address",
    "link": "url",
}

STANDARD_TRANSFORMS: dict[str, Any] = {
    "price": parse_price,
    "admin_fee": digits_to_int,
    "area": rounded_area,
    "rooms": digits_to_int,
    "bathrooms": digits_to_int,
    "parking": digits_to_int,
    "stratum": digits_to_int,
    "images": web_images,
    "amenities": as_list,
}

# Range keys a URL can never express for these sites
RANGE_POST_FILTERS: tuple[str, ...] = (
    "min_rooms",
    "max_rooms",
    "min_bathrooms",
    "max_bathrooms",
    "min_area",
    "max_area",
    "min_price",
    "max_price",
    "min_parking",
    "max_parking",
    "min_stratum",
    "max_stratum",
    "location.neighborhoods",
)


def slugify(text: str) -> str:
    """ASCII, lowercase, dash separated ("Bogotá D.C." -> "bogota-d-c")."""
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", ascii_text.lower()).strip("-")


def city_slug(criteria: Criteria, default: str = "bogota") -> str:
    city = criteria.location.city
    return slugify(city) if city else default


def with_query(url: str, params: list[tuple[str, Any]]) -> str:
    present = [(k, str(v)) for k, v in params if v is not None]
    return f"{url}?{urlencode(present)}" if present else url


def default_values(source_name: str, city: str = "Bogotá") -> dict[str, Any]:
    return {
        "property_type": "Apartamento",
        "source": source_name,
        "location": {
            "address": "",
            "neighborhood": "",
            "city": city,
            "coordinates": {"lat": 0.0, "lng": 0.0},
        },
        "amenities": [],
        "is_active": True,
    }
