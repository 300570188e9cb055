"""Explicit provider registry.

Providers are listed here by hand as ``(provider_id, factory)`` pairs. The
registry builds and checks every schema when it is constructed, so a bad
entry fails at startup instead of in the middle of a search.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from functools import lru_cache

from listing_aggregator.errors import UnknownProviderError
from listing_aggregator.schemas.base import SourceSchema
from listing_aggregator.schemas.ciencuadras import ciencuadras_schema
from listing_aggregator.schemas.fincaraiz import fincaraiz_schema
from listing_aggregator.schemas.mercadolibre import mercadolibre_schema
from listing_aggregator.schemas.metrocuadrado import metrocuadrado_schema
from listing_aggregator.schemas.pads import pads_schema
from listing_aggregator.schemas.properati import properati_schema
from listing_aggregator.schemas.trovit import trovit_schema

SchemaFactory = Callable[[], SourceSchema]

BUNDLED_PROVIDERS: tuple[tuple[str, SchemaFactory], ...] = (
    ("fincaraiz", fincaraiz_schema),
    ("metrocuadrado", metrocuadrado_schema),
    ("mercadolibre", mercadolibre_schema),
    ("ciencuadras", ciencuadras_schema),
    ("properati", properati_schema),
    ("trovit", trovit_schema),
    ("pads", pads_schema),
)


class SchemaRegistry:
    """Read-only mapping of provider id to SourceSchema."""

    def __init__(self, providers: Iterable[tuple[str, SchemaFactory]]) -> None:
        self._schemas: dict[str, SourceSchema] = {}
        for provider_id, factory in providers:
            if provider_id in self._schemas:
                raise ValueError(f"Duplicate provider id: {provider_id}")
            schema = factory()
            if schema.id != provider_id:
                raise ValueError(
                    f"Factory registered as {provider_id!r} built schema {schema.id!r}"
                )
            self._schemas[provider_id] = schema

    def get(self, provider_id: str) -> SourceSchema:
        try:
            return self._schemas[provider_id]
        except KeyError:
            raise UnknownProviderError(provider_id, self.list_providers()) from None

    def list_providers(self) -> list[str]:
        return list(self._schemas)

    def resolve(self, provider_ids: Iterable[str] | None = None) -> list[SourceSchema]:
        """Schemas for an explicit id list, or all of them; unknown ids raise."""
        if provider_ids is None:
            return list(self._schemas.values())
        return [self.get(provider_id) for provider_id in provider_ids]

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)


@lru_cache(maxsize=1)
def default_registry() -> SchemaRegistry:
    """Registry of every bundled provider, built once per process."""
    return SchemaRegistry(BUNDLED_PROVIDERS)
