"""Supervisor package for the local Firecrawl backend.

This package brings up the Redis broker, the queue workers and the API
server in dependency order, waits for readiness and tears everything
down in reverse order with a bounded SIGTERM-then-SIGKILL escalation.

Key Components:
    - ProcessSpec / Stage: Launch specifications grouped in startup order
    - ProcessState / SupervisorState: Lifecycle state enumerations
    - ProcessEvent: Lifecycle event records
    - OutputSink: Protocol for child output consumption
    - ConcatenatedOutputSink / LoggingOutputSink: Sink implementations
    - BoundedRetry: Fixed-interval, attempt-capped probe driver
    - ReadinessPoller: HTTP readiness polling
    - BrokerProbe: Redis PING liveness probe
    - ManagedProcess: Single child process lifecycle
    - ShutdownCoordinator: Graceful termination with escalation
    - Supervisor: Backend coordinator

Example:
    >>> from firecrawl_local.config import load_config
    >>> from firecrawl_local.supervisor import Supervisor
    >>> async with Supervisor(load_config()) as supervisor:
    ...     await supervisor.start()
    ...     await supervisor.health_check()
"""

from ._broker import BrokerProbe
from ._models import (
    HANDLE_STATES,
    LIVE_STATES,
    ProcessEvent,
    ProcessEventType,
    ProcessSpec,
    ProcessState,
    Stage,
    StageName,
    SupervisorState,
    TerminationResult,
)
from ._output import ConcatenatedOutputSink, LoggingOutputSink
from ._poller import ReadinessPoller
from ._process import ManagedProcess
from ._protocol import OutputSink
from ._retry import BoundedRetry, Probe, RetryOutcome
from ._services import (
    SetupCheck,
    build_stages,
    check_backend,
    create_api_spec,
    create_broker_spec,
    create_worker_specs,
)
from ._shutdown import ShutdownCoordinator
from ._supervisor import Supervisor

__all__ = [
    "HANDLE_STATES",
    "LIVE_STATES",
    "BoundedRetry",
    "BrokerProbe",
    "ConcatenatedOutputSink",
    "LoggingOutputSink",
    "ManagedProcess",
    "OutputSink",
    "Probe",
    "ProcessEvent",
    "ProcessEventType",
    "ProcessSpec",
    "ProcessState",
    "ReadinessPoller",
    "RetryOutcome",
    "SetupCheck",
    "ShutdownCoordinator",
    "Stage",
    "StageName",
    "Supervisor",
    "SupervisorState",
    "TerminationResult",
    "build_stages",
    "check_backend",
    "create_api_spec",
    "create_broker_spec",
    "create_worker_specs",
]
