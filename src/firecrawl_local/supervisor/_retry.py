"""Bounded-retry primitive shared by readiness and broker probes.

A probe is an async callable returning True when the target is ready.
BoundedRetry runs it a fixed maximum number of times with a fixed interval
between attempts and a timeout on each attempt. Probe errors and timeouts
count as failed attempts; only exhaustion is reported, through the
returned RetryOutcome.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

import anyio
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

if TYPE_CHECKING:
    from firecrawl_local.config import ReadinessPolicy

Probe = Callable[[], Awaitable[bool]]


@dataclass(frozen=True, slots=True)
class RetryOutcome:
    """Result of a bounded retry run.

    Attributes:
        succeeded: Whether any attempt succeeded.
        attempts: Number of attempts made.
        elapsed: Seconds from the first attempt to the outcome.
    """

    succeeded: bool
    attempts: int
    elapsed: float


@dataclass(frozen=True, slots=True)
class BoundedRetry:
    """Fixed-interval retry with a hard attempt budget.

    Attributes:
        max_attempts: Number of attempts before giving up.
        interval: Seconds to wait between attempts.
        per_attempt_timeout: Seconds each attempt may take.
    """

    max_attempts: int
    interval: float
    per_attempt_timeout: float

    @classmethod
    def from_policy(cls, policy: "ReadinessPolicy") -> Self:  # noqa: UP037
        """Build a BoundedRetry from a ReadinessPolicy."""
        return cls(
            max_attempts=policy.max_attempts,
            interval=policy.interval,
            per_attempt_timeout=policy.per_attempt_timeout,
        )

    async def _attempt(self, probe: Probe) -> bool:
        with anyio.move_on_after(self.per_attempt_timeout):
            try:
                return bool(await probe())
            except Exception:  # noqa: BLE001
                # Any probe failure is just a failed attempt
                return False
        return False

    async def run(self, probe: Probe) -> RetryOutcome:
        """Run the probe until it succeeds or the budget is exhausted.

        Args:
            probe: Async callable returning True on success.

        Returns:
            The outcome, including the number of attempts made.
        """
        attempts = 0
        started = anyio.current_time()

        async def counted_attempt() -> bool:
            nonlocal attempts
            attempts += 1
            return await self._attempt(probe)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.interval),
            retry=retry_if_result(lambda ok: not ok),
            sleep=anyio.sleep,
            reraise=False,
        )

        try:
            _ = await retrying(counted_attempt)
        except RetryError:
            return RetryOutcome(
                succeeded=False,
                attempts=attempts,
                elapsed=anyio.current_time() - started,
            )

        return RetryOutcome(
            succeeded=True,
            attempts=attempts,
            elapsed=anyio.current_time() - started,
        )
