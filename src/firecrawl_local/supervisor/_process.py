"""Managed process: one spawned child plus its observed lifecycle.

A ManagedProcess owns the anyio process handle exclusively. Exit is
observed by a watcher task that also relays stdout/stderr to the output
sink; the `exited` event is set exactly once when exit is observed.
"""

import os
import signal
import subprocess
from typing import TYPE_CHECKING, Literal, final

import anyio
import anyio.abc
from anyio.streams.text import TextReceiveStream

from firecrawl_local.exceptions import SpawnError, SupervisorStateError

from ._models import (
    HANDLE_STATES,
    LIVE_STATES,
    ProcessEvent,
    ProcessEventType,
    ProcessSpec,
    ProcessState,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ._protocol import OutputSink


# Seconds to keep relaying output after exit, for grandchildren holding the pipes.
_DRAIN_TIMEOUT = 1.0


def _get_timestamp() -> str:
    """Get current timestamp in ISO 8601 format."""
    import pendulum  # noqa: PLC0415

    return pendulum.now("UTC").to_iso8601_string()


@final
class ManagedProcess:
    """A single child process of the supervisor.

    Attributes:
        spec: Immutable launch specification.
        state: Current lifecycle state.
        pid: Process ID while a handle is held.
        returncode: Exit code once exit has been observed.
        started_at: ISO 8601 timestamp of the spawn.
        stopped_at: ISO 8601 timestamp of the observed exit.
    """

    __slots__ = (
        "_exited",
        "_on_exit",
        "_output_sink",
        "_process",
        "pid",
        "returncode",
        "spec",
        "started_at",
        "state",
        "stopped_at",
    )

    def __init__(
        self,
        spec: ProcessSpec,
        output_sink: "OutputSink",  # noqa: UP037
        *,
        on_exit: "Callable[[ManagedProcess], None] | None" = None,  # noqa: UP037
    ) -> None:
        """Initialize the managed process in the UNSTARTED state.

        Args:
            spec: Launch specification.
            output_sink: Sink for output lines and lifecycle events.
            on_exit: Called once, synchronously, when exit is observed.
        """
        self.spec = spec
        self.state = ProcessState.UNSTARTED
        self.pid: int | None = None
        self.returncode: int | None = None
        self.started_at: str | None = None
        self.stopped_at: str | None = None
        self._output_sink = output_sink
        self._on_exit = on_exit
        self._process: anyio.abc.Process | None = None
        self._exited = anyio.Event()

    def __repr__(self) -> str:
        return (
            f"ManagedProcess(name={self.name!r}, state={self.state.value!r}, "
            f"pid={self.pid})"
        )

    @property
    def name(self) -> str:
        """Return the unique name of this process."""
        return self.spec.name

    @property
    def exited(self) -> anyio.Event:
        """Return the event that is set once exit has been observed."""
        return self._exited

    @property
    def has_handle(self) -> bool:
        """Return True while an OS process handle is held."""
        return self._process is not None

    def is_live(self) -> bool:
        """Check if the process is starting or running."""
        return self.state in LIVE_STATES

    async def emit_event(
        self,
        event_type: ProcessEventType,
        *,
        message: str | None = None,
    ) -> None:
        """Emit a lifecycle event to the output sink.

        Args:
            event_type: Type of event to emit.
            message: Optional message for the event.
        """
        event = ProcessEvent(
            process_name=self.name,
            event_type=event_type,
            timestamp=_get_timestamp(),
            pid=self.pid,
            returncode=self.returncode,
            message=message,
        )
        try:  # noqa: SIM105
            await self._output_sink.write_event(self.name, event)
        except Exception:  # noqa: BLE001, S110
            # Output sink errors should not affect the process lifecycle
            pass

    async def spawn(self, task_group: anyio.abc.TaskGroup) -> None:
        """Spawn the OS process and start watching it.

        The process stays UNSTARTED until the OS handle exists, is STARTING
        while the STARTED event is emitted, then RUNNING.

        Args:
            task_group: Task group hosting the exit watcher and output relay.

        Raises:
            SupervisorStateError: If the process was already spawned.
            SpawnError: If the OS could not create the process.
        """
        # started_at marks a spawn in flight before any handle exists
        if self.state is not ProcessState.UNSTARTED or self.started_at is not None:
            msg = f"Process '{self.name}' cannot be spawned from state {self.state}"
            raise SupervisorStateError(msg, state=self.state.value)

        self.started_at = _get_timestamp()

        env: dict[str, str] | None = None
        if self.spec.env:
            env = {**os.environ, **self.spec.env}

        try:
            process = await anyio.open_process(
                self.spec.command,
                cwd=self.spec.cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            self.state = ProcessState.FAILED
            await self.emit_event(ProcessEventType.SPAWN_FAILED, message=str(e))
            msg = f"Failed to spawn process '{self.name}': {e}"
            raise SpawnError(msg, process_name=self.name, cause=e) from e

        self._process = process
        self.pid = process.pid
        self.state = ProcessState.STARTING
        task_group.start_soon(self._watch, process, name=f"watch:{self.name}")

        await self.emit_event(
            ProcessEventType.STARTED,
            message=f"Started with command: {' '.join(self.spec.command)}",
        )
        # Exit or a termination request may already have moved the state on
        if self.state is ProcessState.STARTING:
            self.state = ProcessState.RUNNING

    async def _stream_output(
        self,
        stream: TextReceiveStream,
        stream_name: Literal["stdout", "stderr"],
        pid: int,
    ) -> None:
        pending = ""
        try:
            async for chunk in stream:
                *lines, pending = (pending + chunk).split("\n")
                for line in lines:
                    await self._write_line(stream_name, pid, line)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            # Stream closed, which is expected on process exit
            pass
        if pending:
            await self._write_line(stream_name, pid, pending)

    async def _write_line(
        self,
        stream_name: Literal["stdout", "stderr"],
        pid: int,
        line: str,
    ) -> None:
        try:  # noqa: SIM105
            await self._output_sink.write_line(
                self.name, pid, stream_name, line.rstrip("\r")
            )
        except Exception:  # noqa: BLE001, S110
            # Output sink errors should not crash streaming
            pass

    async def _watch(self, process: anyio.abc.Process) -> None:
        """Relay output and record exit of the given process."""
        pid = process.pid
        try:
            async with anyio.create_task_group() as tg:
                if process.stdout is not None:
                    tg.start_soon(
                        self._stream_output,
                        TextReceiveStream(process.stdout),
                        "stdout",
                        pid,
                    )
                if process.stderr is not None:
                    tg.start_soon(
                        self._stream_output,
                        TextReceiveStream(process.stderr),
                        "stderr",
                        pid,
                    )

                returncode = await process.wait()
                requested = self._mark_exited(returncode)
                if requested:
                    await self.emit_event(
                        ProcessEventType.STOPPED, message="Stopped by request"
                    )
                else:
                    await self.emit_event(
                        ProcessEventType.CRASHED,
                        message=f"Exited unexpectedly with code {returncode}",
                    )

                tg.cancel_scope.deadline = anyio.current_time() + _DRAIN_TIMEOUT
        finally:
            try:
                # Kills the process if the watcher is cancelled before exit
                await process.aclose()
            finally:
                if not self._exited.is_set():
                    _ = self._mark_exited(process.returncode)

    def _mark_exited(self, returncode: int | None) -> bool:
        """Record the observed exit and release the handle.

        Returns:
            True if the exit was requested through request_termination().
        """
        requested = self.state is ProcessState.STOPPING

        self.returncode = returncode
        self.stopped_at = _get_timestamp()
        self.state = ProcessState.STOPPED if requested else ProcessState.FAILED
        self._process = None
        self._exited.set()

        if self._on_exit is not None:
            self._on_exit(self)
        return requested

    def request_termination(self) -> bool:
        """Send SIGTERM and move to the STOPPING state.

        Returns:
            True if the signal was delivered, False if the process had
            already exited.
        """
        if self.state in LIVE_STATES:
            self.state = ProcessState.STOPPING
        return self._send_signal(signal.SIGTERM)

    def kill(self) -> bool:
        """Send SIGKILL.

        Returns:
            True if the signal was delivered, False if the process had
            already exited.
        """
        return self._send_signal(signal.SIGKILL)

    def _send_signal(self, sig: signal.Signals) -> bool:
        process = self._process
        if process is None or self._exited.is_set():
            return False
        try:
            process.send_signal(sig)
        except ProcessLookupError:
            # Exited but not yet reaped by the watcher
            return False
        return True

    def check_invariant(self) -> bool:
        """Return True if handle ownership matches the lifecycle state."""
        return self.has_handle == (self.state in HANDLE_STATES)
