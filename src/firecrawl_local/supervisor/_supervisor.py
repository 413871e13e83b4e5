"""Supervisor for the local Firecrawl backend.

This module provides the Supervisor class that brings up the broker, the
queue workers and the API server in dependency order, confirms readiness
and tears everything down in reverse order.
"""

import signal
from contextlib import AsyncExitStack
from types import MappingProxyType
from typing import TYPE_CHECKING, Self, final

import anyio
import anyio.abc

from firecrawl_local.exceptions import (
    PrematureExitError,
    ProcessNotFoundError,
    ReadinessTimeoutError,
    SupervisorError,
    SupervisorStateError,
    TerminationError,
)
from firecrawl_local.utils import get_null_logger

from ._broker import BrokerProbe
from ._models import ProcessState, Stage, StageName, SupervisorState
from ._output import LoggingOutputSink
from ._poller import ReadinessPoller
from ._process import ManagedProcess
from ._retry import BoundedRetry, Probe, RetryOutcome
from ._services import build_stages
from ._shutdown import ShutdownCoordinator

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import TracebackType

    from structlog.typing import FilteringBoundLogger

    from firecrawl_local.config import ReadinessPolicy, SupervisorConfig

    from ._protocol import OutputSink

_STAGE_ORDER = (StageName.BROKER, StageName.WORKERS, StageName.API)


@final
class Supervisor:
    """Brings the backend up in dependency order and tears it down in reverse.

    Must be used as an async context manager; the context owns the task
    group that watches the child processes, and leaving it stops them:

        async with Supervisor(config) as supervisor:
            await supervisor.start()
            ...

    Startup spawns the broker (unless one already answers), then the
    workers, then the API server, and returns once the API server's
    readiness endpoint answers. Any failure on the way rolls back every
    process already spawned before the error propagates.
    """

    __slots__ = (
        "_broker_probe",
        "_config",
        "_coordinator",
        "_exit_stack",
        "_external_broker",
        "_logger",
        "_members",
        "_output_sink",
        "_poller",
        "_premature",
        "_processes",
        "_shutting_down",
        "_stages",
        "_startup_scope",
        "_state",
        "_stop_finished",
        "_task_group",
    )

    def __init__(  # noqa: PLR0913
        self,
        config: "SupervisorConfig",  # noqa: UP037
        *,
        stages: "Sequence[Stage] | None" = None,  # noqa: UP037
        output_sink: "OutputSink | None" = None,  # noqa: UP037
        poller: ReadinessPoller | None = None,
        broker_probe: Probe | None = None,
        coordinator: ShutdownCoordinator | None = None,
        logger: "FilteringBoundLogger | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the supervisor.

        Args:
            config: Resolved backend configuration.
            stages: Broker, workers and API stages, in that order. Built
                from ``config`` if None.
            output_sink: Sink for child output. Logs through ``logger`` if None.
            poller: Readiness poller for the API server.
            broker_probe: Async callable that returns True when the broker
                answers. Pings ``config.broker_url`` if None.
            coordinator: Shutdown coordinator. Built from ``config`` if None.
            logger: Logger for supervisor diagnostics.

        Raises:
            ValueError: If the stages are out of order or process names clash.
        """
        self._config = config
        self._logger = logger or get_null_logger()
        self._output_sink: OutputSink = output_sink or LoggingOutputSink(self._logger)
        self._poller = poller or ReadinessPoller(logger=self._logger)
        self._broker_probe: Probe = broker_probe or BrokerProbe(config.broker_url)
        self._coordinator = coordinator or ShutdownCoordinator(
            default_grace_period=config.grace_period,
            kill_timeout=config.kill_timeout,
            logger=self._logger,
        )

        self._stages: tuple[Stage, ...] = (
            tuple(stages) if stages is not None else build_stages(config)
        )
        if tuple(stage.name for stage in self._stages) != _STAGE_ORDER:
            msg = f"Stages must be ordered {', '.join(_STAGE_ORDER)}"
            raise ValueError(msg)

        self._processes: dict[str, ManagedProcess] = {}
        self._members: dict[StageName, tuple[ManagedProcess, ...]] = {}
        for stage in self._stages:
            members: list[ManagedProcess] = []
            for spec in stage.specs:
                if spec.name in self._processes:
                    msg = f"Duplicate process name '{spec.name}'"
                    raise ValueError(msg)
                process = ManagedProcess(
                    spec, self._output_sink, on_exit=self._handle_exit
                )
                self._processes[spec.name] = process
                members.append(process)
            self._members[stage.name] = tuple(members)

        self._state = SupervisorState.IDLE
        self._shutting_down = False
        self._stop_finished = anyio.Event()
        self._external_broker = False
        self._premature: ManagedProcess | None = None
        self._startup_scope: anyio.CancelScope | None = None
        self._task_group: anyio.abc.TaskGroup | None = None
        self._exit_stack: AsyncExitStack | None = None

    async def __aenter__(self) -> Self:
        if self._exit_stack is not None:
            msg = "Supervisor context is already entered"
            raise SupervisorStateError(msg, state=self._state.value)

        stack = AsyncExitStack()
        self._task_group = await stack.enter_async_context(anyio.create_task_group())
        self._exit_stack = stack
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: "TracebackType | None",  # noqa: UP037
    ) -> None:
        stack = self._exit_stack
        task_group = self._task_group
        if stack is None or task_group is None:
            return

        try:
            with anyio.CancelScope(shield=True):
                await self.stop()
        finally:
            # Watchers of processes that are still alive kill them on cancellation
            if any(process.has_handle for process in self._processes.values()):
                task_group.cancel_scope.cancel()
            self._exit_stack = None
            self._task_group = None
            _ = await stack.__aexit__(None, None, None)

    @property
    def config(self) -> "SupervisorConfig":  # noqa: UP037
        """Return the supervisor configuration."""
        return self._config

    @property
    def state(self) -> SupervisorState:
        """Return the current supervisor state."""
        return self._state

    @property
    def external_broker(self) -> bool:
        """Return True if an already-running broker was detected and reused."""
        return self._external_broker

    @property
    def processes(self) -> "Mapping[str, ManagedProcess]":  # noqa: UP037
        """Return a read-only view of the managed processes by name."""
        return MappingProxyType(self._processes)

    def get_process(self, name: str) -> ManagedProcess:
        """Get a managed process by name.

        Args:
            name: The process name.

        Returns:
            The ManagedProcess with that name.

        Raises:
            ProcessNotFoundError: If no process exists with that name.
        """
        process = self._processes.get(name)
        if process is None:
            msg = f"Process '{name}' not found"
            raise ProcessNotFoundError(msg, process_name=name)
        return process

    def stage_members(self, stage: StageName) -> tuple[ManagedProcess, ...]:
        """Return the processes of a stage in spawn order."""
        return self._members[stage]

    def _require_task_group(self) -> anyio.abc.TaskGroup:
        if self._task_group is None:
            msg = "Supervisor must be used as an async context manager"
            raise SupervisorStateError(msg, state=self._state.value)
        return self._task_group

    def _handle_exit(self, process: ManagedProcess) -> None:
        """React to an observed process exit."""
        if process.state is ProcessState.STOPPED:
            return

        if self._state is SupervisorState.STARTING and self._premature is None:
            self._premature = process
            self._logger.error(
                "premature_exit", process=process.name, returncode=process.returncode
            )
            if self._startup_scope is not None:
                self._startup_scope.cancel()
        elif self._state is SupervisorState.READY:
            self._logger.error(
                "process_crashed", process=process.name, returncode=process.returncode
            )

    async def start(self) -> None:
        """Start the broker, the workers and the API server.

        Raises:
            SupervisorStateError: If not in the IDLE state, not inside the
                context manager, or shutdown was requested during startup.
            SpawnError: If a process could not be spawned.
            PrematureExitError: If a process exited before readiness.
            ReadinessTimeoutError: If the broker or the API server never
                became ready.
        """
        _ = self._require_task_group()
        if self._state is not SupervisorState.IDLE:
            msg = f"Cannot start from state {self._state}"
            raise SupervisorStateError(msg, state=self._state.value)

        self._state = SupervisorState.STARTING
        self._logger.info(
            "supervisor_starting",
            broker_url=self._config.broker_url,
            api_port=self._config.api_port,
            backend_root=str(self._config.backend_root),
        )

        try:
            with anyio.CancelScope() as scope:
                self._startup_scope = scope
                await self._start_sequence()
            self._startup_scope = None
            self._raise_if_aborted(scope)
        except BaseException as e:
            self._startup_scope = None
            with anyio.CancelScope(shield=True):
                await self._rollback(e)
            raise

        self._state = SupervisorState.READY
        self._logger.info("supervisor_ready", external_broker=self._external_broker)

    def _raise_if_aborted(self, scope: anyio.CancelScope) -> None:
        premature = self._premature
        if premature is not None:
            msg = (
                f"Process '{premature.name}' exited with code "
                f"{premature.returncode} before the backend became ready"
            )
            raise PrematureExitError(
                msg, process_name=premature.name, returncode=premature.returncode
            )
        if scope.cancelled_caught:
            msg = "Startup aborted by a shutdown request"
            raise SupervisorStateError(msg, state=self._state.value)

    async def _start_sequence(self) -> None:
        broker, workers, api = self._stages

        if (await self._probe_broker(self._config.broker_probe)).succeeded:
            self._external_broker = True
            self._logger.info(
                "external_broker_detected", broker_url=self._config.broker_url
            )
        else:
            await self._spawn_stage(broker)
            outcome = await self._probe_broker(self._config.broker_readiness)
            if not outcome.succeeded:
                msg = (
                    f"Broker at {self._config.broker_url} did not answer after "
                    f"{outcome.attempts} attempts ({outcome.elapsed:.1f}s)"
                )
                raise ReadinessTimeoutError(
                    msg,
                    endpoint=self._config.broker_url,
                    attempts=outcome.attempts,
                    elapsed=outcome.elapsed,
                )
            await self._settle(broker)

        await self._spawn_stage(workers)
        await self._settle(workers)

        await self._spawn_stage(api)
        _ = await self._poller.poll(self._config.readiness_url, self._config.readiness)

    async def _probe_broker(self, policy: "ReadinessPolicy") -> RetryOutcome:  # noqa: UP037
        outcome = await BoundedRetry.from_policy(policy).run(self._broker_probe)
        self._logger.debug(
            "broker_probe",
            succeeded=outcome.succeeded,
            attempts=outcome.attempts,
            elapsed=round(outcome.elapsed, 3),
        )
        return outcome

    async def _spawn_stage(self, stage: Stage) -> None:
        task_group = self._require_task_group()
        self._logger.info(
            "spawning_stage",
            stage=stage.name.value,
            processes=[spec.name for spec in stage.specs],
        )
        for process in self._members[stage.name]:
            await process.spawn(task_group)

    async def _settle(self, stage: Stage) -> None:
        self._logger.debug(
            "settle_delay", stage=stage.name.value, seconds=self._config.settle_delay
        )
        await anyio.sleep(self._config.settle_delay)

    async def _rollback(self, error: BaseException) -> None:
        self._logger.error(
            "startup_failed",
            error=str(error) or type(error).__name__,
            error_type=type(error).__name__,
        )
        if self._shutting_down:
            # A concurrent stop() owns termination
            await self._stop_finished.wait()
            return

        self._shutting_down = True
        try:
            await self._terminate_stages()
        except TerminationError as e:
            self._logger.error("rollback_incomplete", processes=list(e.process_names))
            error.add_note(str(e))
        finally:
            if self._state is SupervisorState.STARTING:
                self._state = SupervisorState.FAILED

    async def stop(self) -> None:
        """Stop every running process, API server first and broker last.

        Idempotent: a call while stopping, after stopping, or after a
        failed start returns immediately. A call during start() aborts the
        startup; the processes are then terminated here, once.

        Raises:
            TerminationError: If a process could not be confirmed exited
                even after SIGKILL.
        """
        if self._shutting_down:
            self._logger.debug("already_shutting_down", state=self._state.value)
            return
        self._shutting_down = True

        try:
            if self._state is SupervisorState.IDLE:
                self._state = SupervisorState.STOPPED
                return

            if self._startup_scope is not None:
                self._startup_scope.cancel()

            self._state = SupervisorState.STOPPING
            self._logger.info("supervisor_stopping")

            try:
                await self._terminate_stages()
            except anyio.get_cancelled_exc_class():
                # Make sure nothing is left unsignalled
                self._signal_remaining()
                raise
            finally:
                self._state = SupervisorState.STOPPED
        finally:
            self._stop_finished.set()

        self._logger.info("supervisor_stopped")

    async def _terminate_stages(self) -> None:
        stuck: list[str] = []

        for stage in reversed(self._stages):
            batch = [p for p in self._members[stage.name] if p.is_live()]
            if not batch:
                continue

            self._logger.info(
                "stopping_stage",
                stage=stage.name.value,
                processes=[process.name for process in batch],
            )
            try:
                _ = await self._coordinator.terminate_all(batch)
            except TerminationError as e:
                stuck.extend(e.process_names)

        if stuck:
            msg = f"Processes still running after SIGKILL: {', '.join(stuck)}"
            raise TerminationError(msg, process_names=tuple(stuck))

    def _signal_remaining(self) -> None:
        for process in self._processes.values():
            if process.is_live():
                _ = process.request_termination()

    async def health_check(self) -> bool:
        """Probe the API server's readiness endpoint once, without retrying.

        Returns:
            True if the endpoint answered with a 2xx status.
        """
        return await self._poller.probe(
            self._config.readiness_url, self._config.health_timeout
        )

    async def run_until_signalled(self) -> None:
        """Start the backend and keep it up until SIGINT or SIGTERM.

        A signal during startup aborts it; startup errors propagate after
        rollback.
        """
        failure: SupervisorError | None = None

        async with anyio.create_task_group() as tg:
            tg.start_soon(self._cancel_on_signal, tg.cancel_scope)
            try:
                await self.start()
            except SupervisorError as e:
                failure = e
                tg.cancel_scope.cancel()
            else:
                await anyio.sleep_forever()

        if failure is not None:
            raise failure

        await self.stop()

    async def _cancel_on_signal(self, scope: anyio.CancelScope) -> None:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            async for signum in signals:
                self._logger.info("signal_received", signal=signal.Signals(signum).name)
                break
        scope.cancel()

    def get_status(self) -> dict[str, dict[str, object]]:
        """Get status summary for all processes.

        Returns:
            Dictionary mapping process names to status dictionaries.
        """
        return {
            process.name: {
                "stage": stage.name.value,
                "state": process.state.value,
                "pid": process.pid if process.has_handle else None,
                "returncode": process.returncode,
                "started_at": process.started_at,
                "stopped_at": process.stopped_at,
            }
            for stage in self._stages
            for process in self._members[stage.name]
        }
