"""Graceful-then-forceful termination of managed processes."""

from typing import TYPE_CHECKING, final

import anyio

from firecrawl_local.exceptions import TerminationError
from firecrawl_local.utils import get_null_logger

from ._models import ProcessEventType, TerminationResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from structlog.typing import FilteringBoundLogger

    from ._process import ManagedProcess


@final
class ShutdownCoordinator:
    """Drives managed processes from running to terminated.

    Each termination sends SIGTERM, waits on the process's exit event for
    the grace period and escalates to SIGKILL only if exit has not been
    observed by then. Batches are terminated concurrently, so a batch takes
    as long as its slowest member rather than the sum of all of them.
    """

    __slots__ = ("_default_grace_period", "_kill_timeout", "_logger")

    def __init__(
        self,
        *,
        default_grace_period: float = 5.0,
        kill_timeout: float = 5.0,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the coordinator.

        Args:
            default_grace_period: Grace period for processes whose spec
                does not set one.
            kill_timeout: Seconds to wait for exit after SIGKILL.
            logger: Logger for shutdown diagnostics.
        """
        self._default_grace_period = default_grace_period
        self._kill_timeout = kill_timeout
        self._logger = logger or get_null_logger()

    def grace_period_for(self, process: "ManagedProcess") -> float:  # noqa: UP037
        """Return the grace period that applies to a process."""
        if process.spec.grace_period is not None:
            return process.spec.grace_period
        return self._default_grace_period

    async def terminate(
        self,
        process: "ManagedProcess",  # noqa: UP037
        grace_period: float,
    ) -> TerminationResult:
        """Terminate a single process.

        The signal is sent before the first suspension point, so cancelling
        this call never prevents delivery; it only stops the wait.

        Args:
            process: The process to terminate.
            grace_period: Seconds to wait after SIGTERM before SIGKILL.

        Returns:
            The termination outcome. ``confirmed`` is False if exit could
            not be observed even after SIGKILL.
        """
        started = anyio.current_time()

        if process.exited.is_set() or not process.has_handle:
            return TerminationResult(
                name=process.name,
                returncode=process.returncode,
                escalated=False,
                elapsed=0.0,
            )

        _ = process.request_termination()
        self._logger.debug(
            "terminate_requested",
            process=process.name,
            pid=process.pid,
            grace_period=grace_period,
        )

        with anyio.CancelScope(deadline=started + grace_period):
            await process.emit_event(
                ProcessEventType.STOPPING,
                message=f"SIGTERM sent, grace period {grace_period:.1f}s",
            )
            await process.exited.wait()

        escalated = False
        if not process.exited.is_set():
            self._logger.warning(
                "shutdown_timeout",
                process=process.name,
                pid=process.pid,
                grace_period=grace_period,
            )
            escalated = process.kill()
            if escalated:
                await process.emit_event(
                    ProcessEventType.ESCALATED,
                    message=f"No exit after {grace_period:.1f}s, SIGKILL sent",
                )
            with anyio.move_on_after(self._kill_timeout):
                await process.exited.wait()

        elapsed = anyio.current_time() - started

        if not process.exited.is_set():
            self._logger.error(
                "termination_unconfirmed",
                process=process.name,
                pid=process.pid,
                elapsed=elapsed,
            )
            return TerminationResult(
                name=process.name,
                returncode=None,
                escalated=escalated,
                elapsed=elapsed,
                confirmed=False,
            )

        self._logger.info(
            "process_terminated",
            process=process.name,
            returncode=process.returncode,
            escalated=escalated,
            elapsed=round(elapsed, 3),
        )
        return TerminationResult(
            name=process.name,
            returncode=process.returncode,
            escalated=escalated,
            elapsed=elapsed,
        )

    async def terminate_all(
        self,
        processes: "Sequence[ManagedProcess]",  # noqa: UP037
    ) -> list[TerminationResult]:
        """Terminate a batch of processes concurrently.

        Every process gets its own grace-period timer. Returns once every
        termination in the batch has finished.

        Args:
            processes: The batch to terminate.

        Returns:
            Termination outcomes in the order of ``processes``.

        Raises:
            TerminationError: If any process could not be confirmed exited
                even after SIGKILL.
        """
        results: dict[str, TerminationResult] = {}

        async def run_one(process: "ManagedProcess") -> None:  # noqa: UP037
            results[process.name] = await self.terminate(
                process, self.grace_period_for(process)
            )

        async with anyio.create_task_group() as tg:
            for process in processes:
                tg.start_soon(run_one, process, name=f"terminate:{process.name}")

        ordered = [results[process.name] for process in processes]
        unconfirmed = tuple(result.name for result in ordered if not result.confirmed)
        if unconfirmed:
            msg = f"Could not confirm exit after SIGKILL: {', '.join(unconfirmed)}"
            raise TerminationError(msg, process_names=unconfirmed)

        return ordered
