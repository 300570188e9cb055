"""Page fetch strategies: static HTTP and rendered headless browsing."""

from listing_aggregator.fetch.base import FetchedPage, PageFetcher, detect_block
from listing_aggregator.fetch.headless import HeadlessConfig, RenderedFetcher
from listing_aggregator.fetch.static import StaticFetcher
from listing_aggregator.fetch.user_agents import UserAgentRotator

__all__ = [
    "FetchedPage",
    "HeadlessConfig",
    "PageFetcher",
    "RenderedFetcher",
    "StaticFetcher",
    "UserAgentRotator",
    "detect_block",
]
