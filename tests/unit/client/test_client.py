import json
from collections.abc import Callable

import httpx
import pytest

from firecrawl_local.client import (
    CrawlOptions,
    FirecrawlClient,
    ScrapeOptions,
    SearchOptions,
)
from firecrawl_local.exceptions import (
    BackendRequestError,
    BackendResponseError,
    BackendTimeoutError,
    BackendUnavailableError,
    ClientError,
)

Handler = Callable[[httpx.Request], httpx.Response]


class Recorder:
    """Mock transport handler that records requests and replays one response."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    @property
    def body(self) -> dict[str, object]:
        return json.loads(self.requests[-1].content)


def make_client(handler: Handler) -> FirecrawlClient:
    base_url = "http://localhost:3002"
    return FirecrawlClient(
        base_url,
        client=httpx.AsyncClient(
            base_url=base_url, transport=httpx.MockTransport(handler)
        ),
    )


def raising(error: type[httpx.TransportError]) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        raise error("boom", request=request)

    return handler


@pytest.mark.anyio
class TestScrape:
    async def test_posts_camel_case_options(self) -> None:
        recorder = Recorder(
            httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "markdown": "# Example",
                        "rawHtml": "<h1>Example</h1>",
                        "metadata": {
                            "title": "Example",
                            "sourceURL": "https://example.com",
                            "statusCode": 200,
                            "ogImage": "https://example.com/og.png",
                        },
                    },
                },
            )
        )
        options = ScrapeOptions(formats=["markdown", "rawHtml"], only_main_content=True)

        async with make_client(recorder) as client:
            result = await client.scrape_url("https://example.com", options)

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/scrape"
        assert recorder.body == {
            "url": "https://example.com",
            "formats": ["markdown", "rawHtml"],
            "onlyMainContent": True,
        }
        assert result.markdown == "# Example"
        assert result.raw_html == "<h1>Example</h1>"
        assert result.metadata.source_url == "https://example.com"
        assert result.metadata.status_code == 200
        assert result.metadata.model_extra == {"ogImage": "https://example.com/og.png"}

    async def test_without_options_sends_only_url(self) -> None:
        recorder = Recorder(httpx.Response(200, json={"success": True, "data": {}}))

        async with make_client(recorder) as client:
            _ = await client.scrape_url("https://example.com")

        assert recorder.body == {"url": "https://example.com"}


@pytest.mark.anyio
class TestCrawl:
    async def test_start_crawl(self) -> None:
        recorder = Recorder(
            httpx.Response(
                200,
                json={
                    "success": True,
                    "id": "job-123",
                    "url": "http://localhost:3002/v1/crawl/job-123",
                },
            )
        )
        options = CrawlOptions(
            max_depth=2,
            limit=10,
            exclude_paths=["/blog/*"],
            scrape_options=ScrapeOptions(formats=["markdown"]),
        )

        async with make_client(recorder) as client:
            job = await client.crawl_website("https://example.com", options)

        assert recorder.body == {
            "url": "https://example.com",
            "excludePaths": ["/blog/*"],
            "maxDepth": 2,
            "limit": 10,
            "scrapeOptions": {"formats": ["markdown"]},
        }
        assert job.id == "job-123"
        assert job.url == "http://localhost:3002/v1/crawl/job-123"

    async def test_crawl_status(self) -> None:
        recorder = Recorder(
            httpx.Response(
                200,
                json={
                    "success": True,
                    "status": "completed",
                    "completed": 2,
                    "total": 2,
                    "data": [{"markdown": "a"}, {"markdown": "b"}],
                },
            )
        )

        async with make_client(recorder) as client:
            status = await client.get_crawl_status("job-123")

        request = recorder.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/v1/crawl/job-123"
        assert status.status == "completed"
        assert status.completed == 2
        assert [page.markdown for page in status.data] == ["a", "b"]

    async def test_job_id_is_escaped(self) -> None:
        recorder = Recorder(httpx.Response(200, json={"success": True}))

        async with make_client(recorder) as client:
            _ = await client.get_crawl_status("../admin")

        assert recorder.requests[0].url.raw_path == b"/v1/crawl/..%2Fadmin"


@pytest.mark.anyio
class TestSearch:
    async def test_search(self) -> None:
        recorder = Recorder(
            httpx.Response(
                200,
                json={"success": True, "data": [{"markdown": "result", "url": "u"}]},
            )
        )
        options = SearchOptions(query="firecrawl", limit=3, location="Germany")

        async with make_client(recorder) as client:
            results = await client.search(options)

        assert recorder.requests[0].url.path == "/v1/search"
        assert recorder.body == {"query": "firecrawl", "limit": 3, "location": "Germany"}
        assert results.data[0].markdown == "result"


@pytest.mark.anyio
class TestErrors:
    async def test_timeout(self) -> None:
        async with make_client(raising(httpx.ReadTimeout)) as client:
            with pytest.raises(BackendTimeoutError, match="scrape URL timed out"):
                _ = await client.scrape_url("https://example.com")

    async def test_connection_refused(self) -> None:
        async with make_client(raising(httpx.ConnectError)) as client:
            with pytest.raises(BackendUnavailableError) as exc_info:
                _ = await client.crawl_website("https://example.com")

        assert "http://localhost:3002" in str(exc_info.value)
        assert exc_info.value.operation == "crawl website"

    async def test_error_status_with_json_detail(self) -> None:
        response = httpx.Response(402, json={"success": False, "error": "Out of credits"})

        async with make_client(Recorder(response)) as client:
            with pytest.raises(BackendResponseError) as exc_info:
                _ = await client.scrape_url("https://example.com")

        assert exc_info.value.status_code == 402
        assert exc_info.value.detail == "Out of credits"
        assert str(exc_info.value) == "Firecrawl API error (402): Out of credits"

    async def test_error_status_with_text_body(self) -> None:
        response = httpx.Response(502, text="Bad Gateway")

        async with make_client(Recorder(response)) as client:
            with pytest.raises(BackendResponseError) as exc_info:
                _ = await client.search(SearchOptions(query="x"))

        assert exc_info.value.detail == "Bad Gateway"

    async def test_error_status_without_body(self) -> None:
        async with make_client(Recorder(httpx.Response(500))) as client:
            with pytest.raises(BackendResponseError) as exc_info:
                _ = await client.get_crawl_status("job")

        assert exc_info.value.detail == "HTTP 500"

    async def test_unsuccessful_payload(self) -> None:
        response = httpx.Response(200, json={"success": False, "error": "Blocked"})

        async with make_client(Recorder(response)) as client:
            with pytest.raises(BackendRequestError, match="Crawl failed: Blocked"):
                _ = await client.crawl_website("https://example.com")

    async def test_unsuccessful_payload_without_error(self) -> None:
        response = httpx.Response(200, json={"data": {}})

        async with make_client(Recorder(response)) as client:
            with pytest.raises(BackendRequestError, match="Unknown error"):
                _ = await client.scrape_url("https://example.com")

    async def test_invalid_json(self) -> None:
        response = httpx.Response(200, text="<html>")

        async with make_client(Recorder(response)) as client:
            with pytest.raises(ClientError, match="not valid JSON"):
                _ = await client.scrape_url("https://example.com")


@pytest.mark.anyio
class TestHealthCheck:
    async def test_healthy(self) -> None:
        recorder = Recorder(httpx.Response(200, text="Hello, world!"))

        async with make_client(recorder) as client:
            assert await client.health_check() is True

        assert recorder.requests[0].url.path == "/test"

    async def test_error_status(self) -> None:
        async with make_client(Recorder(httpx.Response(503))) as client:
            assert await client.health_check() is False

    async def test_unreachable(self) -> None:
        async with make_client(raising(httpx.ConnectError)) as client:
            assert await client.health_check() is False


@pytest.mark.anyio
class TestLifecycle:
    async def test_injected_client_is_not_closed(self) -> None:
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(Recorder(httpx.Response(200)))
        )

        async with FirecrawlClient(client=http_client):
            pass

        assert not http_client.is_closed
        await http_client.aclose()

    async def test_owned_client_is_closed(self) -> None:
        client = FirecrawlClient("http://localhost:3002/")

        assert client.base_url == "http://localhost:3002"
        await client.aclose()
