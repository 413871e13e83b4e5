"""Protocol definitions for the supervisor system.

This module defines the interfaces that decouple the supervisor core
from output handling:
- OutputSink: Protocol for consuming process output and events
"""

from typing import TYPE_CHECKING, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ._models import ProcessEvent


@runtime_checkable
class OutputSink(Protocol):
    """Protocol for consuming managed process output lines.

    OutputSinks receive the stdout/stderr of managed processes and their
    lifecycle events. Implementations must never write to the supervisor's
    own stdout, which is reserved for protocol responses.
    """

    async def write_line(
        self,
        process_name: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        """Write a line of process output.

        Args:
            process_name: Name of the process that produced the output.
            pid: Process ID of the process.
            stream: Which output stream the line came from.
            line: The output line (without trailing newline).
        """
        ...

    async def write_event(
        self,
        process_name: str,
        event: "ProcessEvent",  # noqa: UP037
    ) -> None:
        """Write a process lifecycle event.

        Args:
            process_name: Name of the process that generated the event.
            event: The lifecycle event to record.
        """
        ...
