"""Client for the Firecrawl API served by the local backend."""

from ._client import DEFAULT_BASE_URL, FirecrawlClient
from ._models import (
    CrawlOptions,
    CrawlResult,
    OutputFormat,
    PageMetadata,
    ScrapeOptions,
    ScrapeResult,
    SearchOptions,
    SearchResult,
)

__all__ = [
    "DEFAULT_BASE_URL",
    "CrawlOptions",
    "CrawlResult",
    "FirecrawlClient",
    "OutputFormat",
    "PageMetadata",
    "ScrapeOptions",
    "ScrapeResult",
    "SearchOptions",
    "SearchResult",
]
