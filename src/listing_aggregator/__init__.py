"""Listing Aggregator - schema-driven scraping of real-estate listing sites.

Each supported site is described by a declarative provider schema; a single
extraction engine and output normalizer turn any of them into canonical
listings, and the search service fans out across providers concurrently.
"""

__version__ = "0.1.0"

# Lazy imports so `import listing_aggregator` stays cheap (playwright, bs4)
def __getattr__(name: str):
    if name == "SearchService":
        from listing_aggregator.service import SearchService
        return SearchService
    if name == "Criteria":
        from listing_aggregator.models import Criteria
        return Criteria
    if name == "StandardListing":
        from listing_aggregator.models import StandardListing
        return StandardListing
    if name == "default_registry":
        from listing_aggregator.schemas import default_registry
        return default_registry
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
