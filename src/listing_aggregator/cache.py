"""Persistence boundary for search results.

The service talks to any object with ``save`` and ``load_cached``; expiry is
the implementation's business. ``InMemoryListingCache`` is the reference one.
"""
from __future__ import annotations

import hashlib
import time
from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

from listing_aggregator.models.criteria import Criteria
from listing_aggregator.models.listing import StandardListing


@runtime_checkable
class ListingCache(Protocol):
    def save(self, criteria_hash: str, listings: Sequence[StandardListing]) -> None:
        ...

    def load_cached(self, criteria_hash: str) -> list[StandardListing] | None:
        ...


def criteria_hash(criteria: Criteria) -> str:
    """Stable key for the listings a criteria produces (preferences only affect scoring)."""
    canonical = criteria.model_dump_json(exclude={"preferences"})
    return hashlib.sha256(canonical.encode()).hexdigest()


class InMemoryListingCache:
    """Process-local cache with a fixed time-to-live."""

    def __init__(self, ttl_seconds: float = 900.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[str, tuple[float, list[StandardListing]]] = {}

    def save(self, criteria_hash: str, listings: Sequence[StandardListing]) -> None:
        self._entries[criteria_hash] = (self.clock() + self.ttl_seconds, list(listings))

    def load_cached(self, criteria_hash: str) -> list[StandardListing] | None:
        entry = self._entries.get(criteria_hash)
        if entry is None:
            return None
        expires_at, listings = entry
        if self.clock() >= expires_at:
            del self._entries[criteria_hash]
            return None
        return list(listings)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
