"""Runtime configuration read from the environment.

Environment variables (all optional):
    LISTINGS_MAX_PAGES         page cap applied on top of each provider budget
    LISTINGS_PROVIDER_TIMEOUT  wall-clock seconds per provider run
    LISTINGS_DEFAULT_LIMIT     page size when the caller gives none
    LISTINGS_MAX_LIMIT         upper bound on the page size
    LISTINGS_HEADLESS          run the rendered fetcher without a window
    LISTINGS_SETTLE_MS         post-navigation settle delay for rendered pages
    LISTINGS_CACHE_TTL         seconds a cached search stays valid
    LISTINGS_LOG_LEVEL         structlog level for entry points
"""
from __future__ import annotations

import os

from pydantic import BaseModel, Field

POST_FILTER_WARNING_THRESHOLD = 5


def _f(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


def _i(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


def _b(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class SearchConfig(BaseModel):
    """Configuration for a SearchService instance."""

    max_pages: int = Field(default=5, ge=1, description="Page cap per provider run (caller side)")
    provider_timeout: float = Field(
        default=120.0, gt=0, description="Wall-clock budget per provider run in seconds"
    )
    default_limit: int = Field(default=50, ge=1, description="Listings per result page by default")
    max_limit: int = Field(default=10_000, ge=1, description="Largest accepted page size")
    headless: bool = Field(default=True, description="Run the rendered fetcher headless")
    settle_ms: int = Field(default=2_000, ge=0, description="Settle delay after rendered navigation")
    cache_ttl: float = Field(default=900.0, ge=0, description="Seconds a cached search stays valid")
    log_level: str = Field(default="INFO", description="Log level used by entry points")

    @classmethod
    def from_env(cls) -> SearchConfig:
        return cls(
            max_pages=_i("LISTINGS_MAX_PAGES", 5),
            provider_timeout=_f("LISTINGS_PROVIDER_TIMEOUT", 120.0),
            default_limit=_i("LISTINGS_DEFAULT_LIMIT", 50),
            max_limit=_i("LISTINGS_MAX_LIMIT", 10_000),
            headless=_b("LISTINGS_HEADLESS", True),
            settle_ms=_i("LISTINGS_SETTLE_MS", 2_000),
            cache_ttl=_f("LISTINGS_CACHE_TTL", 900.0),
            log_level=os.getenv("LISTINGS_LOG_LEVEL", "INFO").upper(),
        )
