import anyio
import pytest

from firecrawl_local.config import ReadinessPolicy
from firecrawl_local.supervisor import BoundedRetry


class CountingProbe:
    def __init__(self, results: list[bool] | None = None, *, error: Exception | None = None) -> None:
        self.calls = 0
        self._results = results or []
        self._error = error

    async def __call__(self) -> bool:
        self.calls += 1
        if self._error is not None:
            raise self._error
        if self.calls <= len(self._results):
            return self._results[self.calls - 1]
        return False


@pytest.mark.anyio
class TestBoundedRetry:
    async def test_makes_exactly_max_attempts_when_never_ready(self) -> None:
        probe = CountingProbe()
        retry = BoundedRetry(max_attempts=4, interval=0.0, per_attempt_timeout=1.0)

        outcome = await retry.run(probe)

        assert not outcome.succeeded
        assert outcome.attempts == 4
        assert probe.calls == 4

    async def test_stops_at_first_success(self) -> None:
        probe = CountingProbe([False, False, True])
        retry = BoundedRetry(max_attempts=10, interval=0.0, per_attempt_timeout=1.0)

        outcome = await retry.run(probe)

        assert outcome.succeeded
        assert outcome.attempts == 3
        assert probe.calls == 3

    async def test_probe_errors_count_as_failed_attempts(self) -> None:
        probe = CountingProbe(error=ConnectionRefusedError())
        retry = BoundedRetry(max_attempts=3, interval=0.0, per_attempt_timeout=1.0)

        outcome = await retry.run(probe)

        assert not outcome.succeeded
        assert probe.calls == 3

    async def test_slow_probe_times_out_per_attempt(self) -> None:
        calls = 0

        async def hanging_probe() -> bool:
            nonlocal calls
            calls += 1
            await anyio.sleep_forever()
            return True

        retry = BoundedRetry(max_attempts=2, interval=0.0, per_attempt_timeout=0.05)

        with anyio.fail_after(2):
            outcome = await retry.run(hanging_probe)

        assert not outcome.succeeded
        assert calls == 2

    async def test_waits_interval_between_attempts(self) -> None:
        probe = CountingProbe()
        retry = BoundedRetry(max_attempts=3, interval=0.1, per_attempt_timeout=1.0)

        outcome = await retry.run(probe)

        # Two waits separate three attempts
        assert outcome.elapsed >= 0.2
        assert outcome.elapsed < 1.0

    async def test_from_policy(self) -> None:
        retry = BoundedRetry.from_policy(
            ReadinessPolicy(max_attempts=7, interval_millis=20, per_attempt_timeout_millis=300)
        )

        assert retry.max_attempts == 7
        assert retry.interval == 0.02
        assert retry.per_attempt_timeout == 0.3
