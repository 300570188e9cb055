"""Fetcher contract shared by the static and rendered strategies."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from listing_aggregator.schemas.base import FetchMode

BLOCK_STATUS_CODES = frozenset({403, 429})

# Markers of challenge / captcha interstitials, matched against lowercased HTML
BLOCK_MARKERS: tuple[str, ...] = (
    "cf-challenge",
    "challenge-platform",
    "px-captcha",
    "captcha-delivery",
    "verify you are human",
    "are you a robot",
    "unusual traffic",
    "/cdn-cgi/challenge",
)


@dataclass
class FetchedPage:
    url: str
    status_code: int
    html: str
    mode: FetchMode


@runtime_checkable
class PageFetcher(Protocol):
    """Retrieves one page as HTML.

    Implementations raise ``FetchError`` for transport problems and
    ``AntiAutomationDetected`` for explicit blocking.
    """

    mode: FetchMode

    async def fetch(self, url: str) -> FetchedPage:
        ...

    async def close(self) -> None:
        ...


def detect_block(status_code: int, html: str) -> str | None:
    """Return a reason when the response looks like an anti-bot wall."""
    if status_code in BLOCK_STATUS_CODES:
        return f"HTTP {status_code}"
    lowered = html[:200_000].lower()
    for marker in BLOCK_MARKERS:
        if marker in lowered:
            return f"challenge marker {marker!r}"
    return None
