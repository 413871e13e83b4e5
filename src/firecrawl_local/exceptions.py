"""firecrawl-local exceptions."""


class FirecrawlLocalError(Exception):
    """Base exception for firecrawl-local errors."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(FirecrawlLocalError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration values cannot be parsed.

    Attributes:
        key: The configuration key or environment variable that failed.
        value: The raw value that could not be parsed.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        value: str | None = None,
    ) -> None:
        """Initialize with error message and optional source context."""
        super().__init__(message)
        self.key: str | None = key
        self.value: str | None = value


# =============================================================================
# Supervisor Exceptions
# =============================================================================


class SupervisorError(FirecrawlLocalError):
    """Base exception for supervisor errors."""


class SupervisorStateError(SupervisorError):
    """Raised when a supervisor operation is invalid in the current state.

    Attributes:
        state: The supervisor state at the time of the call.
    """

    def __init__(self, message: str, *, state: str | None = None) -> None:
        """Initialize with error message and supervisor state.

        Args:
            message: Human-readable error message.
            state: The supervisor state at the time of the call.
        """
        super().__init__(message)
        self.state: str | None = state


class ProcessNotFoundError(SupervisorError, KeyError):
    """Raised when a managed process cannot be found by name.

    Attributes:
        process_name: The name of the process that was not found.
    """

    def __init__(self, message: str, *, process_name: str | None = None) -> None:
        """Initialize with error message and process context.

        Args:
            message: Human-readable error message.
            process_name: The name of the process that was not found.
        """
        super().__init__(message)
        self.process_name: str | None = process_name

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class SpawnError(SupervisorError):
    """Raised when the OS could not create a managed process.

    Attributes:
        process_name: The name of the process that failed to spawn.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        process_name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and process context.

        Args:
            message: Human-readable error message.
            process_name: The name of the process that failed to spawn.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.process_name: str | None = process_name
        self.cause: Exception | None = cause


class PrematureExitError(SupervisorError):
    """Raised when a managed process exits before readiness is confirmed.

    Attributes:
        process_name: The name of the process that exited.
        returncode: The exit code reported by the OS.
    """

    def __init__(
        self,
        message: str,
        *,
        process_name: str | None = None,
        returncode: int | None = None,
    ) -> None:
        """Initialize with error message and exit context.

        Args:
            message: Human-readable error message.
            process_name: The name of the process that exited.
            returncode: The exit code reported by the OS.
        """
        super().__init__(message)
        self.process_name: str | None = process_name
        self.returncode: int | None = returncode


class ReadinessTimeoutError(SupervisorError):
    """Raised when readiness probing exhausts its attempt budget.

    Attributes:
        endpoint: The endpoint that was probed.
        attempts: Number of probes made.
        elapsed: Seconds spent probing.
    """

    def __init__(
        self,
        message: str,
        *,
        endpoint: str,
        attempts: int,
        elapsed: float,
    ) -> None:
        """Initialize with error message and probing diagnostics.

        Args:
            message: Human-readable error message.
            endpoint: The endpoint that was probed.
            attempts: Number of probes made.
            elapsed: Seconds spent probing.
        """
        super().__init__(message)
        self.endpoint: str = endpoint
        self.attempts: int = attempts
        self.elapsed: float = elapsed


class TerminationError(SupervisorError):
    """Raised when a process cannot be confirmed exited even after SIGKILL.

    This indicates an operational anomaly that needs external intervention.

    Attributes:
        process_names: Names of the processes that did not exit.
    """

    def __init__(self, message: str, *, process_names: tuple[str, ...] = ()) -> None:
        """Initialize with error message and the stuck processes.

        Args:
            message: Human-readable error message.
            process_names: Names of the processes that did not exit.
        """
        super().__init__(message)
        self.process_names: tuple[str, ...] = process_names


# =============================================================================
# Client Exceptions
# =============================================================================


class ClientError(FirecrawlLocalError):
    """Base exception for Firecrawl API client errors.

    Attributes:
        operation: Human-readable name of the failed operation.
    """

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        """Initialize with error message and operation context."""
        super().__init__(message)
        self.operation: str | None = operation


class BackendUnavailableError(ClientError):
    """Raised when the Firecrawl API server cannot be reached."""


class BackendTimeoutError(ClientError):
    """Raised when a request to the Firecrawl API server times out."""


class BackendResponseError(ClientError):
    """Raised when the Firecrawl API server answers with a non-2xx status.

    Attributes:
        status_code: The HTTP status code of the response.
        detail: Error detail extracted from the response body.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        detail: str,
        operation: str | None = None,
    ) -> None:
        """Initialize with error message and response context."""
        super().__init__(message, operation=operation)
        self.status_code: int = status_code
        self.detail: str = detail


class BackendRequestError(ClientError):
    """Raised when the Firecrawl API reports ``success: false``."""
