"""Error taxonomy for the listing pipeline.

Only `InvalidCriteriaError` and `UnknownProviderError` ever reach a caller of
`SearchService.search`; everything else is converted into a zero contribution
(provider level), a stopped pagination (page level), a defaulted field (field
level) or a counted rejection (record level).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ListingsError(Exception):
    """Base class for all listing aggregator errors."""


class InvalidCriteriaError(ListingsError, ValueError):
    """Search criteria failed validation before any scraping started."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class UnknownProviderError(ListingsError, KeyError):
    """A provider id is not present in the schema registry."""

    def __init__(self, provider_id: str, known: list[str] | None = None) -> None:
        super().__init__(provider_id)
        self.provider_id = provider_id
        self.known = known or []

    def __str__(self) -> str:
        if self.known:
            return f"Unknown provider {self.provider_id!r} (known: {', '.join(self.known)})"
        return f"Unknown provider {self.provider_id!r}"


class FetchError(ListingsError):
    """A page could not be retrieved."""

    def __init__(self, provider_id: str, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"{provider_id}: {reason} ({url})")
        self.provider_id = provider_id
        self.url = url
        self.reason = reason
        self.status_code = status_code


class ProviderFetchError(FetchError):
    """The first page of a provider run failed, so the provider contributes nothing."""


class PageFetchError(FetchError):
    """A page after the first failed; pagination stops and earlier pages are kept."""

    def __init__(self, provider_id: str, url: str, reason: str, page: int, status_code: int | None = None) -> None:
        super().__init__(provider_id, url, reason, status_code)
        self.page = page


class AntiAutomationDetected(ProviderFetchError):
    """The site answered with an explicit blocking signal (captcha, 403/429, challenge page)."""


@dataclass
class ExtractionMismatch(ListingsError):
    """No extractor in a field chain produced a value."""

    field_name: str
    tried: int = 0

    def __str__(self) -> str:
        return f"no extractor matched field {self.field_name!r} ({self.tried} tried)"


@dataclass
class RecordRejected(ListingsError):
    """A raw record was vetoed by a transform or failed validation."""

    reason: str
    field_name: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        if self.field_name:
            return f"{self.reason} ({self.field_name})"
        return self.reason
