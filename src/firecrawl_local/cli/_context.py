"""CLI context shared between the global options handler and commands.

The context is set once per invocation by the meta handler and read by
commands through a context variable.
"""

import contextvars
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rich.console import Console

from firecrawl_local.config import SupervisorConfig
from firecrawl_local.utils import get_null_logger

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

_current_cli_context: "contextvars.ContextVar[CLIContext | None]" = (  # noqa: UP037
    contextvars.ContextVar("cli_context", default=None)
)


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Per-invocation CLI state.

    Attributes:
        config: Resolved backend configuration.
        console: Console for command output.
        error_console: Console for errors and child process output.
        logger: Structured logger for supervisor diagnostics.
        verbose: Whether debug logging was requested.
    """

    config: SupervisorConfig = field(repr=False)
    console: Console = field(default_factory=Console, repr=False)
    error_console: Console = field(
        default_factory=lambda: Console(stderr=True), repr=False
    )
    logger: "FilteringBoundLogger" = field(default_factory=get_null_logger, repr=False)  # noqa: UP037
    verbose: bool = False

    @classmethod
    def get_current(cls) -> "CLIContext":  # noqa: UP037
        """Get the active CLIContext, or a default one built from defaults."""
        ctx = _current_cli_context.get()
        if ctx is not None:
            return ctx
        return cls(config=SupervisorConfig())

    @classmethod
    def set_current(cls, ctx: "CLIContext") -> None:  # noqa: UP037
        """Set the active CLIContext."""
        _ = _current_cli_context.set(ctx)

    @classmethod
    def reset(cls) -> None:
        """Clear the active CLIContext."""
        _ = _current_cli_context.set(None)
