"""Shared CLI utilities: exit codes and error output."""

from enum import IntEnum
from typing import TYPE_CHECKING, Never

if TYPE_CHECKING:
    from rich.console import Console

__all__ = ["ExitCode", "exit_with_error", "get_error_console"]


class ExitCode(IntEnum):
    """Exit codes for firecrawl-local commands."""

    SUCCESS = 0
    CONFIG_ERROR = 1
    STARTUP_ERROR = 2
    SHUTDOWN_ERROR = 3
    NOT_READY = 4


def get_error_console() -> "Console":  # noqa: UP037
    """Get a Rich console configured for error output to stderr."""
    from rich.console import Console

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.STARTUP_ERROR,
    *,
    console: "Console | None" = None,  # noqa: UP037
) -> Never:
    """Print an error message and exit with the specified code.

    Args:
        message: The error message to display.
        code: The exit code to use.
        console: Console for output. A stderr console is created if None.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)
