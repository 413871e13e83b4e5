import httpx
import pytest

from firecrawl_local.config import ReadinessPolicy
from firecrawl_local.exceptions import ReadinessTimeoutError
from firecrawl_local.supervisor import ReadinessPoller

ENDPOINT = "http://localhost:3002/test"

FAST = ReadinessPolicy(max_attempts=5, interval_millis=0, per_attempt_timeout_millis=500)


def make_client(statuses: list[int | Exception]) -> tuple[httpx.AsyncClient, list[str]]:
    """Build a client that answers with the given statuses in order."""
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        outcome = statuses[min(len(seen), len(statuses)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), seen


@pytest.mark.anyio
class TestPoll:
    async def test_succeeds_on_first_2xx(self) -> None:
        client, seen = make_client([503, 503, 200])
        poller = ReadinessPoller(client)

        outcome = await poller.poll(ENDPOINT, FAST)

        assert outcome.succeeded
        assert outcome.attempts == 3
        assert seen == [ENDPOINT] * 3

    async def test_exhaustion_raises_with_attempt_count(self) -> None:
        client, seen = make_client([503])
        poller = ReadinessPoller(client)

        with pytest.raises(ReadinessTimeoutError) as exc_info:
            _ = await poller.poll(ENDPOINT, FAST)

        assert exc_info.value.attempts == 5
        assert exc_info.value.endpoint == ENDPOINT
        assert len(seen) == 5

    async def test_connection_errors_consume_attempts(self) -> None:
        refused = httpx.ConnectError("connection refused")
        client, seen = make_client([refused, refused, 204])
        poller = ReadinessPoller(client)

        outcome = await poller.poll(ENDPOINT, FAST)

        assert outcome.attempts == 3
        assert len(seen) == 3

    async def test_default_poller_reports_timeout(self) -> None:
        poller = ReadinessPoller()

        with pytest.raises(ReadinessTimeoutError) as exc_info:
            _ = await poller.poll(
                "http://127.0.0.1:9/test",
                ReadinessPolicy(
                    max_attempts=1, interval_millis=0, per_attempt_timeout_millis=500
                ),
            )

        assert exc_info.value.attempts == 1

    async def test_redirect_is_not_ready(self) -> None:
        client, _ = make_client([302])
        poller = ReadinessPoller(client)

        with pytest.raises(ReadinessTimeoutError):
            _ = await poller.poll(
                ENDPOINT,
                ReadinessPolicy(max_attempts=2, interval_millis=0),
            )


@pytest.mark.anyio
class TestProbe:
    async def test_single_request(self) -> None:
        client, seen = make_client([500, 200])
        poller = ReadinessPoller(client)

        assert await poller.probe(ENDPOINT, 1.0) is False
        assert len(seen) == 1

    async def test_healthy(self) -> None:
        client, _ = make_client([200])
        poller = ReadinessPoller(client)

        assert await poller.probe(ENDPOINT, 1.0) is True

    async def test_unreachable_without_injected_client(self) -> None:
        poller = ReadinessPoller()

        # Port 9 (discard) is closed on test hosts
        assert await poller.probe("http://127.0.0.1:9/test", 1.0) is False
