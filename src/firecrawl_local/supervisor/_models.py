"""Data models for the supervisor system.

This module defines the core data types for backend process management:
- ProcessState: Lifecycle states for a managed process
- SupervisorState: Lifecycle states for the supervisor as a whole
- ProcessEventType: Types of lifecycle events
- ProcessEvent: Immutable event records
- ProcessSpec: Immutable launch specification
- Stage: A group of processes spawned together
- TerminationResult: Outcome of terminating one process
"""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations


class ProcessState(StrEnum):
    """Managed process lifecycle states.

    - UNSTARTED: Created but never spawned
    - STARTING: Handle acquired, STARTED event being emitted
    - RUNNING: Process is running
    - STOPPING: Termination has been requested
    - STOPPED: Exit has been observed
    - FAILED: Spawn failed or the process exited unexpectedly
    """

    UNSTARTED = "unstarted"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


HANDLE_STATES = frozenset(
    {ProcessState.STARTING, ProcessState.RUNNING, ProcessState.STOPPING}
)
"""States in which a managed process holds an OS process handle."""

LIVE_STATES = frozenset({ProcessState.STARTING, ProcessState.RUNNING})
"""States from which a managed process is terminated on shutdown."""


class SupervisorState(StrEnum):
    """Supervisor lifecycle states.

    - IDLE: Nothing has been started
    - STARTING: Stages are being spawned or readiness is being polled
    - READY: The API server confirmed readiness
    - STOPPING: Shutdown is in progress
    - STOPPED: Shutdown completed
    - FAILED: Startup failed and everything was rolled back
    """

    IDLE = "idle"
    STARTING = "starting"
    READY = "ready"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


class ProcessEventType(StrEnum):
    """Types of process lifecycle events."""

    STARTED = "started"
    STOPPING = "stopping"
    ESCALATED = "escalated"
    STOPPED = "stopped"
    CRASHED = "crashed"
    SPAWN_FAILED = "spawn_failed"


class StageName(StrEnum):
    """Startup stages in dependency order."""

    BROKER = "broker"
    WORKERS = "workers"
    API = "api"


@dataclass(frozen=True, slots=True)
class ProcessEvent:
    """Immutable process lifecycle event.

    Attributes:
        process_name: Name of the process that generated the event.
        event_type: Type of lifecycle event.
        timestamp: ISO 8601 formatted timestamp.
        pid: Process ID if applicable.
        returncode: Exit code if the process terminated.
        message: Optional human-readable message.
    """

    process_name: str
    event_type: ProcessEventType
    timestamp: str
    pid: int | None = None
    returncode: int | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class ProcessSpec:
    """Launch specification for a managed process.

    Attributes:
        name: Unique identifier for the process.
        command: Command and arguments to execute.
        cwd: Working directory for the process.
        env: Environment variables overlaid on the parent's environment.
        grace_period: Seconds between SIGTERM and SIGKILL, or None to use
            the supervisor default.
    """

    name: str
    command: tuple[str, ...]
    cwd: Path | None = None
    env: dict[str, str] = field(default_factory=dict)
    grace_period: float | None = None


@dataclass(frozen=True, slots=True)
class Stage:
    """A group of processes spawned together and stopped as one batch.

    Attributes:
        name: Stage identifier.
        specs: Launch specifications of the processes in this stage.
    """

    name: StageName
    specs: tuple[ProcessSpec, ...]


@dataclass(frozen=True, slots=True)
class TerminationResult:
    """Outcome of terminating a single process.

    Attributes:
        name: Name of the terminated process.
        returncode: Exit code, or None if no exit was observed.
        escalated: Whether SIGKILL had to be sent.
        elapsed: Seconds from SIGTERM to observed exit.
        confirmed: Whether the process is known not to be running.
    """

    name: str
    returncode: int | None
    escalated: bool
    elapsed: float
    confirmed: bool = True
