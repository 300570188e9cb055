"""Search criteria model.

Criteria is the provider-agnostic input of a search. Filter keys use the
attribute names below; nested ones are addressed with dots
(``location.city``, ``location.neighborhoods``, ``preferences.amenities``).
"""
from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from listing_aggregator.errors import InvalidCriteriaError

# Every filter key a caller can set, in the order warnings are reported
FILTER_KEYS: tuple[str, ...] = (
    "operation",
    "property_types",
    "min_rooms",
    "max_rooms",
    "min_bathrooms",
    "max_bathrooms",
    "min_parking",
    "max_parking",
    "min_area",
    "max_area",
    "min_price",
    "max_price",
    "min_stratum",
    "max_stratum",
    "location.city",
    "location.neighborhoods",
    "preferences.amenities",
)

# Short names accepted in provider schemas
FILTER_ALIASES: dict[str, str] = {
    "city": "location.city",
    "neighborhoods": "location.neighborhoods",
    "amenities": "preferences.amenities",
}

_RANGES = ("rooms", "bathrooms", "parking", "area", "price", "stratum")


class Operation(str, Enum):
    """Listing operation."""
    RENT = "rent"
    SALE = "sale"

    @property
    def slug(self) -> str:
        """Spanish path segment used by the Colombian listing sites."""
        return "arriendo" if self is Operation.RENT else "venta"


class LocationCriteria(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: str | None = Field(default=None)
    neighborhoods: list[str] = Field(default_factory=list)


class Preferences(BaseModel):
    """Soft preferences. Only the external scorer reads these."""

    model_config = ConfigDict(frozen=True)

    wet_areas: list[str] = Field(default_factory=list, description="jacuzzi, sauna, turco ...")
    sports: list[str] = Field(default_factory=list, description="gym, pool, courts ...")
    amenities: list[str] = Field(default_factory=list)
    weights: dict[str, float] = Field(default_factory=dict, description="Scorer weights by key")


class Criteria(BaseModel):
    """Immutable search criteria passed down the whole pipeline."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    operation: Operation = Field(default=Operation.RENT)
    property_types: list[str] = Field(default_factory=lambda: ["Apartamento"])

    min_rooms: int | None = Field(default=None, ge=0)
    max_rooms: int | None = Field(default=None, ge=0)
    min_bathrooms: int | None = Field(default=None, ge=0)
    max_bathrooms: int | None = Field(default=None, ge=0)
    min_parking: int | None = Field(default=None, ge=0)
    max_parking: int | None = Field(default=None, ge=0)
    min_area: int | None = Field(default=None, ge=0)
    max_area: int | None = Field(default=None, ge=0)
    min_price: int | None = Field(default=None, ge=0)
    max_price: int | None = Field(default=None, ge=0)
    min_stratum: int | None = Field(default=None, ge=1, le=6)
    max_stratum: int | None = Field(default=None, ge=1, le=6)
    allow_admin_overage: bool = Field(
        default=False, description="Compare max_price against the rent alone, not rent + admin fee"
    )

    location: LocationCriteria = Field(default_factory=LocationCriteria)
    preferences: Preferences = Field(default_factory=Preferences)
    sources: list[str] | None = Field(
        default=None, description="Explicit provider ids; None means every registered provider"
    )

    @model_validator(mode="after")
    def validate_ranges(self) -> "Criteria":
        for name in _RANGES:
            low = getattr(self, f"min_{name}")
            high = getattr(self, f"max_{name}")
            if low is not None and high is not None and low > high:
                raise ValueError(f"min_{name} ({low}) is greater than max_{name} ({high})")
        return self

    def value_at(self, key: str) -> Any:
        """Return the value behind a (possibly dotted or aliased) filter key."""
        node: Any = self
        for part in FILTER_ALIASES.get(key, key).split("."):
            node = getattr(node, part, None)
            if node is None:
                return None
        return node

    def requested_filters(self) -> list[str]:
        """Filter keys that carry a value in this criteria."""
        return [key for key in FILTER_KEYS if is_present(self.value_at(key))]


def is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str | list | tuple | set | dict):
        return len(value) > 0
    return True


def parse_criteria(payload: Mapping[str, Any] | Criteria) -> Criteria:
    """Validate a raw payload, raising InvalidCriteriaError instead of pydantic's error."""
    if isinstance(payload, Criteria):
        return payload
    try:
        return Criteria.model_validate(dict(payload))
    except ValidationError as e:
        raise InvalidCriteriaError(
            f"Invalid search criteria: {e.error_count()} error(s)",
            errors=[{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()],
        ) from e
