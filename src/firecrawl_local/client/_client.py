"""HTTP client for a local Firecrawl API server."""

from typing import TYPE_CHECKING, Literal, Self, final
from urllib.parse import quote

import httpx

from firecrawl_local.exceptions import (
    BackendRequestError,
    BackendResponseError,
    BackendTimeoutError,
    BackendUnavailableError,
    ClientError,
)
from firecrawl_local.utils import get_null_logger

from ._models import (
    CrawlOptions,
    CrawlResult,
    ScrapeOptions,
    ScrapeResult,
    SearchOptions,
    SearchResult,
)

if TYPE_CHECKING:
    from types import TracebackType

    from structlog.typing import FilteringBoundLogger

DEFAULT_BASE_URL = "http://localhost:3002"
DEFAULT_TIMEOUT = 60.0
HEALTH_TIMEOUT = 5.0


def _error_detail(response: httpx.Response) -> str:
    """Extract the error message from a failed response."""
    text = response.text
    try:
        body = response.json()
    except ValueError:
        return text or f"HTTP {response.status_code}"

    if isinstance(body, dict):
        detail = body.get("error") or body.get("message")
        if detail:
            return str(detail)
    return text or f"HTTP {response.status_code}"


def _unwrap(payload: dict[str, object]) -> dict[str, object]:
    """Return the object under ``data``, or the payload itself without ``success``."""
    data = payload.get("data")
    if isinstance(data, dict):
        return data
    return {key: value for key, value in payload.items() if key != "success"}


@final
class FirecrawlClient:
    """Async client for the Firecrawl v1 API.

    Usable as an async context manager; a client built without an injected
    ``httpx.AsyncClient`` owns its connection pool and closes it on exit.

    Example:
        >>> async with FirecrawlClient() as client:
        ...     page = await client.scrape_url("https://example.com")
    """

    __slots__ = ("_client", "_logger", "_owns_client", "base_url")

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the API server.
            timeout: Seconds allowed for each API request.
            client: HTTP client, already bound to ``base_url``, to use
                instead of creating one.
            logger: Logger for request diagnostics.
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout
        )
        self._logger = logger or get_null_logger()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: "TracebackType | None",  # noqa: UP037
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: Literal["GET", "POST"],
        path: str,
        *,
        operation: str,
        label: str,
        body: dict[str, object] | None = None,
    ) -> dict[str, object]:
        self._logger.debug("api_request", method=method, path=path)

        try:
            response = await self._client.request(method, path, json=body)
        except httpx.TimeoutException as e:
            msg = (
                f"Request to {operation} timed out. "
                "The operation may still be processing."
            )
            raise BackendTimeoutError(msg, operation=operation) from e
        except httpx.TransportError as e:
            msg = (
                f"Unable to connect to Firecrawl server at {self.base_url}. "
                "Make sure Firecrawl is running locally."
            )
            raise BackendUnavailableError(msg, operation=operation) from e

        if not response.is_success:
            detail = _error_detail(response)
            self._logger.warning(
                "api_error", path=path, status_code=response.status_code, detail=detail
            )
            msg = f"Firecrawl API error ({response.status_code}): {detail}"
            raise BackendResponseError(
                msg,
                status_code=response.status_code,
                detail=detail,
                operation=operation,
            )

        try:
            payload = response.json()
        except ValueError as e:
            msg = f"Failed to {operation}: response is not valid JSON"
            raise ClientError(msg, operation=operation) from e

        if not isinstance(payload, dict) or not payload.get("success"):
            error = payload.get("error") if isinstance(payload, dict) else None
            msg = f"{label} failed: {error or 'Unknown error'}"
            raise BackendRequestError(msg, operation=operation)

        return payload

    async def scrape_url(
        self, url: str, options: ScrapeOptions | None = None
    ) -> ScrapeResult:
        """Scrape a single page.

        Args:
            url: Page to scrape.
            options: Formats and extraction settings.

        Returns:
            The scraped page.

        Raises:
            ClientError: If the request fails; see the subclasses.
        """
        body = {"url": url, **(options.to_payload() if options else {})}
        payload = await self._request(
            "POST", "/v1/scrape", operation="scrape URL", label="Scrape", body=body
        )
        return ScrapeResult.model_validate(_unwrap(payload))

    async def crawl_website(
        self, url: str, options: CrawlOptions | None = None
    ) -> CrawlResult:
        """Start a crawl job.

        Args:
            url: Starting URL.
            options: Path filters, depth and page limits.

        Returns:
            The created crawl job.
        """
        body = {"url": url, **(options.to_payload() if options else {})}
        payload = await self._request(
            "POST", "/v1/crawl", operation="crawl website", label="Crawl", body=body
        )
        return CrawlResult.model_validate(_unwrap(payload))

    async def get_crawl_status(self, job_id: str) -> CrawlResult:
        """Get the progress and results of a crawl job."""
        payload = await self._request(
            "GET",
            f"/v1/crawl/{quote(job_id, safe='')}",
            operation="get crawl status",
            label="Get crawl status",
        )
        return CrawlResult.model_validate(_unwrap(payload))

    async def search(self, options: SearchOptions) -> SearchResult:
        """Search the web and scrape the results."""
        payload = await self._request(
            "POST",
            "/v1/search",
            operation="search and scrape",
            label="Search",
            body=options.to_payload(),
        )
        return SearchResult.model_validate(_unwrap(payload))

    async def health_check(self) -> bool:
        """Return True if the API server answers its readiness endpoint."""
        try:
            response = await self._client.get("/test", timeout=HEALTH_TIMEOUT)
        except httpx.HTTPError as e:
            self._logger.debug("health_check_failed", error=str(e))
            return False
        return response.is_success
