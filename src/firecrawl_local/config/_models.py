"""Configuration models.

This module defines the immutable Pydantic models consumed by the
supervisor, the readiness poller and the logging factory:
- LogLevel / LogFormat: logging enums
- LoggingConfig: logging section
- ReadinessPolicy: bounds for a bounded-retry probe
- SupervisorConfig: resolved backend configuration
"""

from enum import StrEnum
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

WORKER_SCRIPT = Path("apps/api/dist/src/services/queue-worker.js")
API_SCRIPT = Path("apps/api/dist/src/index.js")


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
        max_bytes: Rotate the log file at this size; 0 disables rotation.
        backup_count: Number of rotated log files to keep.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.TEXT
    file: str = ""
    max_bytes: int = Field(default=0, ge=0)
    backup_count: int = Field(default=3, ge=0)


class ReadinessPolicy(BaseModel):
    """Bounds for a bounded-retry probe.

    Attributes:
        max_attempts: Number of probes to make before giving up.
        interval_millis: Delay between consecutive probes.
        per_attempt_timeout_millis: Timeout applied to each individual probe.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    max_attempts: int = Field(default=30, ge=1)
    interval_millis: int = Field(default=1000, ge=0)
    per_attempt_timeout_millis: int = Field(default=5000, gt=0)

    @property
    def interval(self) -> float:
        """Return the interval between probes in seconds."""
        return self.interval_millis / 1000

    @property
    def per_attempt_timeout(self) -> float:
        """Return the per-probe timeout in seconds."""
        return self.per_attempt_timeout_millis / 1000


class SupervisorConfig(BaseModel):
    """Resolved configuration for the local Firecrawl backend.

    Attributes:
        broker_url: Redis connection URL passed to workers and the API server.
        api_port: Port the API server listens on.
        api_host: Host used to reach the API server.
        backend_root: Root of the Firecrawl checkout.
        worker_count: Number of queue worker processes to spawn.
        node_executable: Interpreter used for the worker and API scripts.
        broker_executable: Executable used to spawn a local broker.
        settle_delay: Seconds to wait after spawning each dependent stage.
        grace_period: Seconds between SIGTERM and SIGKILL.
        kill_timeout: Seconds to wait for exit after SIGKILL.
        readiness_path: Path of the API server's readiness endpoint.
        readiness: Policy for the API server readiness poll.
        broker_readiness: Policy for waiting on a self-spawned broker.
        broker_probe: Policy for detecting an already-running broker.
        health_timeout: Timeout for a single health check probe.
        logging: Logging settings.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    broker_url: str = "redis://localhost:6379"
    api_port: int = Field(default=3002, ge=1, le=65535)
    api_host: str = "localhost"
    backend_root: Path = Field(default_factory=Path.cwd)
    worker_count: int = Field(default=1, ge=1)
    node_executable: str = "node"
    broker_executable: str = "redis-server"
    settle_delay: float = Field(default=2.0, ge=0)
    grace_period: float = Field(default=5.0, gt=0)
    kill_timeout: float = Field(default=5.0, gt=0)
    readiness_path: str = "/test"
    readiness: ReadinessPolicy = ReadinessPolicy()
    broker_readiness: ReadinessPolicy = ReadinessPolicy(
        max_attempts=10, interval_millis=1000, per_attempt_timeout_millis=1000
    )
    broker_probe: ReadinessPolicy = ReadinessPolicy(
        max_attempts=1, interval_millis=0, per_attempt_timeout_millis=1000
    )
    health_timeout: float = Field(default=5.0, gt=0)
    logging: LoggingConfig = LoggingConfig()

    @property
    def api_base_url(self) -> str:
        """Return the base URL of the API server."""
        return f"http://{self.api_host}:{self.api_port}"

    @property
    def readiness_url(self) -> str:
        """Return the full URL of the readiness endpoint."""
        return f"{self.api_base_url}{self.readiness_path}"

    @property
    def api_dir(self) -> Path:
        """Return the directory of the Firecrawl API application."""
        return self.backend_root / "apps" / "api"

    @property
    def worker_script(self) -> Path:
        """Return the path of the queue worker entry script."""
        return self.backend_root / WORKER_SCRIPT

    @property
    def api_script(self) -> Path:
        """Return the path of the API server entry script."""
        return self.backend_root / API_SCRIPT
