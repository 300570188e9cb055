"""Canonical listing model produced by the output normalizer."""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from urllib.parse import parse_qsl, urlencode

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Extracted, unvalidated key/value record for one listing card
RawListingRecord = dict[str, Any]

# Numeric fields where 0 means "not extracted" unless listed as present
NUMERIC_FIELDS: tuple[str, ...] = ("area", "rooms", "bathrooms", "parking", "stratum")

# Query parameters that identify a visit, not a listing (utm_* is matched by prefix)
TRACKING_PARAMS = frozenset(
    {"ref", "position", "search_layout", "tracking_id", "gclid", "fbclid"}
)


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = 0.0
    lng: float = 0.0


class ListingLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str = ""
    neighborhood: str = ""
    city: str = ""
    coordinates: Coordinates = Field(default_factory=Coordinates)


class StandardListing(BaseModel):
    """A normalized, provider-agnostic listing.

    Numeric fields the site did not expose are 0 and named in
    ``missing_fields``; nothing is estimated or invented.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    price: int = Field(ge=0)
    admin_fee: int = Field(default=0, ge=0)
    total_price: int = Field(ge=0)
    area: int = Field(default=0, ge=0, description="Square meters, 0 when unknown")
    rooms: int = Field(default=0, ge=0)
    bathrooms: int = Field(default=0, ge=0)
    parking: int = Field(default=0, ge=0)
    stratum: int = Field(default=0, ge=0, le=6, description="Socioeconomic stratum (estrato), 0 when unknown")
    property_type: str = "Apartamento"
    location: ListingLocation = Field(default_factory=ListingLocation)
    amenities: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list, description="Absolute URLs only")
    url: str = Field(default="", description="Absolute listing URL or empty")
    source: str
    provider_id: str
    scraped_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    price_per_m2: int = Field(default=0, ge=0)
    description: str = ""
    is_active: bool = True
    missing_fields: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_invariants(self) -> "StandardListing":
        if self.total_price != self.price + self.admin_fee:
            raise ValueError("total_price must equal price + admin_fee")
        expected = round(self.total_price / self.area) if self.area > 0 else 0
        if self.price_per_m2 != expected:
            raise ValueError(f"price_per_m2 must be {expected}, got {self.price_per_m2}")
        if self.url and not _is_absolute(self.url):
            raise ValueError(f"url must be absolute: {self.url!r}")
        for image in self.images:
            if not _is_absolute(image):
                raise ValueError(f"image url must be absolute: {image!r}")
        return self

    @property
    def dedup_key(self) -> tuple[str, ...]:
        """Canonical URL when present, else the (title, price) pair."""
        if self.url:
            return ("url", canonical_url(self.url))
        return ("title_price", self.title.strip().lower(), str(self.price))


def _is_absolute(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def _is_tracking_param(key: str) -> bool:
    return key.startswith("utm_") or key in TRACKING_PARAMS


def canonical_url(url: str) -> str:
    """Normalize a URL for comparison.

    Protocol, ``www.``, fragment, trailing slash and tracking parameters are
    dropped. Remaining query parameters are kept in sorted order, so two
    listings only compare equal when they point at the same resource.
    """
    normalized = url.strip().lower()
    for prefix in ("https://", "http://"):
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix):]
            break
    if normalized.startswith("www."):
        normalized = normalized[4:]
    path, _, query = normalized.split("#", 1)[0].partition("?")
    params = sorted(
        (key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
        if not _is_tracking_param(key)
    )
    path = path.rstrip("/")
    return f"{path}?{urlencode(params)}" if params else path
