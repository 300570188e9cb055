from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Dict

from listing_aggregator.schemas.base import PerformanceBudget


@dataclass
class RateLimitConfig:
    requests_per_minute: int = 30
    min_interval: float = 0.0  # seconds between request starts (delay floor)
    max_concurrent: int = 1
    window_seconds: float = 60.0

    @classmethod
    def from_budget(cls, budget: PerformanceBudget) -> RateLimitConfig:
        return cls(
            requests_per_minute=budget.requests_per_minute,
            min_interval=budget.delay_between_requests_ms / 1000,
            max_concurrent=budget.max_concurrent_requests,
        )

    @property
    def spacing(self) -> float:
        return max(self.min_interval, self.window_seconds / self.requests_per_minute)


class RateLimiter:
    """Per-provider pacing: FIFO tokens, fixed spacing, sliding-window cap, concurrency ceiling.

    ``wait_for_slot`` only ever delays. ``slot`` additionally holds one of
    ``max_concurrent`` in-flight permits until the request finishes.
    """

    def __init__(self, cfg: RateLimitConfig) -> None:
        self.cfg = cfg
        self._lock = asyncio.Lock()  # waiters are woken in FIFO order
        self._permits = asyncio.Semaphore(cfg.max_concurrent)
        self._issued: deque[float] = deque()
        self._last_issued: float | None = None
        self._in_flight = 0

    async def wait_for_slot(self) -> None:
        async with self._lock:
            while True:
                now = time.monotonic()
                cutoff = now - self.cfg.window_seconds
                while self._issued and self._issued[0] <= cutoff:
                    self._issued.popleft()
                delay = 0.0
                if self._last_issued is not None:
                    delay = self._last_issued + self.cfg.spacing - now
                if len(self._issued) >= self.cfg.requests_per_minute:
                    delay = max(delay, self._issued[0] + self.cfg.window_seconds - now)
                if delay <= 0:
                    break
                await asyncio.sleep(delay)
            issued_at = time.monotonic()
            self._issued.append(issued_at)
            self._last_issued = issued_at

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self._permits:
            await self.wait_for_slot()
            self._in_flight += 1
            try:
                yield
            finally:
                self._in_flight -= 1

    def stats(self) -> dict:
        now = time.monotonic()
        return {
            "requests_per_minute": self.cfg.requests_per_minute,
            "spacing_seconds": self.cfg.spacing,
            "issued_in_window": sum(1 for t in self._issued if t > now - self.cfg.window_seconds),
            "in_flight": self._in_flight,
            "max_concurrent": self.cfg.max_concurrent,
        }


class RateLimiterRegistry:
    """One limiter per provider so consecutive searches share pacing."""

    def __init__(self) -> None:
        self._limiters: Dict[str, RateLimiter] = {}

    def get(self, provider_id: str, budget: PerformanceBudget) -> RateLimiter:
        key = provider_id.lower()
        if key not in self._limiters:
            self._limiters[key] = RateLimiter(RateLimitConfig.from_budget(budget))
        return self._limiters[key]

    def report_status(self) -> dict:
        """Snapshot of every limiter for debugging."""
        return {key: limiter.stats() for key, limiter in self._limiters.items()}
