"""HTTP readiness polling for the API server."""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, final

import httpx

from firecrawl_local.exceptions import ReadinessTimeoutError
from firecrawl_local.utils import get_null_logger

from ._retry import BoundedRetry, RetryOutcome

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from structlog.typing import FilteringBoundLogger

    from firecrawl_local.config import ReadinessPolicy


@final
class ReadinessPoller:
    """Polls an HTTP endpoint until it answers with a 2xx status.

    A connection refusal, a timeout and a non-2xx answer are all the same
    thing to the poller: one failed attempt.
    """

    __slots__ = ("_client", "_logger")

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the poller.

        Args:
            client: HTTP client to use. A short-lived client is created per
                call if None.
            logger: Logger for polling diagnostics.
        """
        self._client = client
        self._logger = logger or get_null_logger()

    @asynccontextmanager
    async def _session(self) -> "AsyncIterator[httpx.AsyncClient]":  # noqa: UP037
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient() as client:
            yield client

    @staticmethod
    async def _get(client: httpx.AsyncClient, endpoint: str, timeout: float) -> bool:
        response = await client.get(endpoint, timeout=timeout)
        return response.is_success

    async def probe(self, endpoint: str, timeout: float) -> bool:
        """Make a single, non-retrying readiness probe.

        Args:
            endpoint: URL to GET.
            timeout: Seconds the probe may take.

        Returns:
            True if the endpoint answered with a 2xx status.
        """
        retry = BoundedRetry(max_attempts=1, interval=0.0, per_attempt_timeout=timeout)
        async with self._session() as client:
            outcome = await retry.run(lambda: self._get(client, endpoint, timeout))
        return outcome.succeeded

    async def poll(self, endpoint: str, policy: "ReadinessPolicy") -> RetryOutcome:  # noqa: UP037
        """Probe the endpoint until it is ready or the budget is exhausted.

        Args:
            endpoint: URL to GET.
            policy: Attempt budget, interval and per-attempt timeout.

        Returns:
            The successful outcome.

        Raises:
            ReadinessTimeoutError: If no attempt succeeded.
        """
        retry = BoundedRetry.from_policy(policy)
        self._logger.debug(
            "readiness_poll_started",
            endpoint=endpoint,
            max_attempts=policy.max_attempts,
            interval=policy.interval,
        )

        async with self._session() as client:
            outcome = await retry.run(
                lambda: self._get(client, endpoint, policy.per_attempt_timeout)
            )

        if not outcome.succeeded:
            msg = (
                f"{endpoint} did not become ready after {outcome.attempts} "
                f"attempts ({outcome.elapsed:.1f}s)"
            )
            raise ReadinessTimeoutError(
                msg,
                endpoint=endpoint,
                attempts=outcome.attempts,
                elapsed=outcome.elapsed,
            )

        self._logger.info(
            "readiness_confirmed",
            endpoint=endpoint,
            attempts=outcome.attempts,
            elapsed=round(outcome.elapsed, 3),
        )
        return outcome
