"""Provider schemas and the registry that holds them."""

from listing_aggregator.schemas.base import (
    CARD_FIELDS,
    ExtractionConfig,
    FetchMode,
    InputMapping,
    OutputMapping,
    PerformanceBudget,
    SourceSchema,
    page_query_param,
)
from listing_aggregator.schemas.registry import (
    BUNDLED_PROVIDERS,
    SchemaRegistry,
    default_registry,
)

__all__ = [
    "BUNDLED_PROVIDERS",
    "CARD_FIELDS",
    "ExtractionConfig",
    "FetchMode",
    "InputMapping",
    "OutputMapping",
    "PerformanceBudget",
    "SchemaRegistry",
    "SourceSchema",
    "default_registry",
    "page_query_param",
]
