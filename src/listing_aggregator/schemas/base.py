"""Declarative provider contract.

A SourceSchema carries no behavior beyond pure functions: how to build the
search URL, which filters the URL can express, where each field lives in a
listing card, how raw values map onto the canonical listing, and how fast the
site may be hit.
"""
from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

if TYPE_CHECKING:
    from listing_aggregator.models.criteria import Criteria

UrlBuilder = Callable[["Criteria"], str]
PageUrlBuilder = Callable[[str, int], str]
# Returns the new value, or None to reject the whole record
Transform = Callable[[Any], Any]

# Raw record keys the extraction engine knows how to fill
CARD_FIELDS: tuple[str, ...] = (
    "title",
    "price",
    "admin_fee",
    "area",
    "rooms",
    "bathrooms",
    "parking",
    "stratum",
    "property_type",
    "location",
    "description",
    "images",
    "link",
)


class FetchMode(str, Enum):
    """How a provider's pages are retrieved."""
    STATIC = "static"
    RENDERED = "rendered"


def page_query_param(search_url: str, page: int) -> str:
    """Page 1 is the search URL itself; later pages set ``page=<n>``."""
    if page <= 1:
        return search_url
    parts = urlsplit(search_url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "page"]
    query.append(("page", str(page)))
    return urlunsplit(parts._replace(query=urlencode(query)))


def _frozen(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class InputMapping:
    url_builder: UrlBuilder
    supported_filters: tuple[str, ...]
    requires_post_filtering: tuple[str, ...]
    page_url: PageUrlBuilder = page_query_param

    def expressible(self, key: str) -> bool:
        return key in self.supported_filters or key in self.requires_post_filtering


@dataclass(frozen=True)
class ExtractionConfig:
    """Where fields live in the markup.

    ``card_selectors`` are tried in order and the first that matches at least
    one node defines the listing cards. ``selectors`` and ``regex_patterns``
    are ordered per field; see ``listing_aggregator.extraction.extractors``.
    """

    method: FetchMode
    card_selectors: tuple[str, ...]
    selectors: Mapping[str, tuple[str, ...]]
    regex_patterns: Mapping[str, tuple[re.Pattern[str], ...]] = field(default_factory=dict)
    next_page_selectors: tuple[str, ...] = ()
    render_capable: bool = False
    wait_for_selector: str | None = None
    settle_ms: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "selectors", _frozen(self.selectors))
        object.__setattr__(self, "regex_patterns", _frozen(self.regex_patterns))
        unknown = (set(self.selectors) | set(self.regex_patterns)) - set(CARD_FIELDS)
        if unknown:
            raise ValueError(f"Unknown card fields: {sorted(unknown)}")
        if not self.card_selectors:
            raise ValueError("At least one card selector is required")

    @property
    def can_render(self) -> bool:
        return self.method is FetchMode.RENDERED or self.render_capable


@dataclass(frozen=True)
class OutputMapping:
    field_mappings: Mapping[str, str] = field(default_factory=dict)
    transformations: Mapping[str, Transform] = field(default_factory=dict)
    defaults: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_mappings", _frozen(self.field_mappings))
        object.__setattr__(self, "transformations", _frozen(self.transformations))
        object.__setattr__(self, "defaults", _frozen(self.defaults))


@dataclass(frozen=True)
class PerformanceBudget:
    requests_per_minute: int
    delay_between_requests_ms: int
    max_concurrent_requests: int
    timeout_ms: int
    max_pages: int

    def __post_init__(self) -> None:
        for name in ("requests_per_minute", "max_concurrent_requests", "timeout_ms", "max_pages"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.delay_between_requests_ms < 0:
            raise ValueError("delay_between_requests_ms must not be negative")

    @property
    def min_interval(self) -> float:
        """Seconds between two request starts."""
        return max(self.delay_between_requests_ms / 1000, 60 / self.requests_per_minute)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


@dataclass(frozen=True)
class SourceSchema:
    """Everything the pipeline needs to know about one provider."""

    id: str
    name: str
    base_url: str
    input_mapping: InputMapping
    extraction: ExtractionConfig
    output_mapping: OutputMapping
    performance: PerformanceBudget

    def __post_init__(self) -> None:
        if not self.id or self.id != self.id.lower():
            raise ValueError(f"Provider id must be a non-empty lowercase string: {self.id!r}")
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(f"{self.id}: base_url must be absolute")

    def build_url(self, criteria: Criteria) -> str:
        return self.input_mapping.url_builder(criteria)
