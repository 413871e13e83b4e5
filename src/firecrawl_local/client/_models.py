"""Pydantic models for Firecrawl API requests and responses.

Request options serialize with camelCase keys. Response models keep any
field the server sends beyond the ones declared here.
"""

from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

OutputFormat = Literal["markdown", "html", "rawHtml", "links", "screenshot"]


class _Options(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    def to_payload(self) -> dict[str, object]:
        """Serialize to a request body fragment with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ScrapeOptions(_Options):
    """Options for scraping a single page."""

    formats: list[OutputFormat] | None = Field(
        default=None, description="Output formats to include"
    )
    include_tags: list[str] | None = Field(
        default=None, description="HTML tags to include in extraction"
    )
    exclude_tags: list[str] | None = Field(
        default=None, description="HTML tags to exclude from extraction"
    )
    only_main_content: bool | None = Field(
        default=None, description="Extract only main content"
    )
    timeout: int | None = Field(
        default=None, description="Request timeout in milliseconds"
    )


class CrawlOptions(_Options):
    """Options for crawling a website."""

    include_paths: list[str] | None = Field(
        default=None, description="URL patterns to include"
    )
    exclude_paths: list[str] | None = Field(
        default=None, description="URL patterns to exclude"
    )
    max_depth: int | None = Field(
        default=None, description="Maximum crawl depth"
    )
    limit: int | None = Field(
        default=None, description="Maximum number of pages to crawl"
    )
    allow_backward_links: bool | None = Field(
        default=None, description="Allow crawling backward links"
    )
    allow_external_links: bool | None = Field(
        default=None, description="Allow crawling external links"
    )
    scrape_options: ScrapeOptions | None = Field(
        default=None, description="Options applied to every crawled page"
    )


class SearchOptions(_Options):
    """Options for a web search whose results are scraped."""

    query: str = Field(description="Search query")
    limit: int | None = Field(
        default=None, description="Maximum number of results"
    )
    tbs: str | None = Field(
        default=None, description="Time-based search filter"
    )
    filter: str | None = Field(
        default=None, description="Search filter"
    )
    location: str | None = Field(
        default=None, description="Geographic location for search"
    )
    scrape_options: ScrapeOptions | None = Field(
        default=None, description="Options applied to every result page"
    )


class _Result(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )


class PageMetadata(_Result):
    """Metadata extracted from a scraped page."""

    title: str | None = None
    description: str | None = None
    language: str | None = None
    source_url: str | None = Field(default=None, alias="sourceURL")
    status_code: int | None = None
    error: str | None = None


class ScrapeResult(_Result):
    """Content of one scraped page, in the requested formats."""

    markdown: str | None = None
    html: str | None = None
    raw_html: str | None = None
    links: list[str] | None = None
    screenshot: str | None = None
    metadata: PageMetadata = Field(default_factory=PageMetadata)


class CrawlResult(_Result):
    """A crawl job, as returned when it is created or polled."""

    id: str | None = None
    job_id: str | None = None
    url: str | None = None
    status: str | None = None
    completed: bool | int | None = None
    total: int | None = None
    current: int | None = None
    next: str | None = None
    data: list[ScrapeResult] = Field(default_factory=list)


class SearchResult(_Result):
    """Scraped pages returned by a search."""

    data: list[ScrapeResult] = Field(default_factory=list)
