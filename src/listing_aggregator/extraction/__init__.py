"""Card extraction: extractor chains, provider hooks and the paginating engine."""

from listing_aggregator.extraction.engine import (
    EngineResult,
    EngineState,
    ExtractionEngine,
    ExtractionStats,
    FetchStrategy,
    default_fetcher_factory,
)
from listing_aggregator.extraction.extractors import (
    NUMERIC_RANGES,
    CssAttribute,
    CssText,
    FieldChain,
    RegexMatch,
    build_chain,
    build_chains,
)
from listing_aggregator.extraction.hooks import HOOKS, apply_hooks

__all__ = [
    "HOOKS",
    "NUMERIC_RANGES",
    "CssAttribute",
    "CssText",
    "EngineResult",
    "EngineState",
    "ExtractionEngine",
    "ExtractionStats",
    "FetchStrategy",
    "FieldChain",
    "RegexMatch",
    "apply_hooks",
    "build_chain",
    "build_chains",
    "default_fetcher_factory",
]
