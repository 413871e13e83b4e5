"""Output sink implementations for the supervisor system.

Both sinks keep child output off stdout: ConcatenatedOutputSink prints to
a stderr console and LoggingOutputSink forwards to a structlog logger.
"""

from typing import TYPE_CHECKING, Literal, final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from firecrawl_local.utils import get_null_logger

from ._models import ProcessEventType

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from ._models import ProcessEvent

_NAME_STYLE = Style(color="blue", bold=True)
_DETAIL_STYLE = Style(dim=True)
_STREAM_STYLES: dict[str, Style] = {
    "stdout": Style(),
    "stderr": Style(color="red", dim=True),
}
_EVENT_STYLES: dict[ProcessEventType, Style] = {
    ProcessEventType.STARTED: Style(color="green", bold=True),
    ProcessEventType.STOPPING: Style(color="yellow", dim=True),
    ProcessEventType.ESCALATED: Style(color="magenta", bold=True),
    ProcessEventType.STOPPED: Style(color="yellow"),
    ProcessEventType.CRASHED: Style(color="red", bold=True),
    ProcessEventType.SPAWN_FAILED: Style(color="red", bold=True),
}


@final
class ConcatenatedOutputSink:
    """Output sink that interleaves every child's output on one console.

    Lines print as ``[name:pid] line``, stderr lines dimmed red. Events
    print as ``[name] EVENT (pid=...) returncode=... - message`` with
    the details that are known.
    """

    __slots__ = ("_console",)

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the output sink.

        Args:
            console: Console to print to. A stderr console if None.
        """
        self._console = console or Console(stderr=True)

    async def write_line(
        self,
        process_name: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        self._console.print(
            Text.assemble(
                (f"[{process_name}:{pid}]", _NAME_STYLE),
                " ",
                (line, _STREAM_STYLES[stream]),
            )
        )

    async def write_event(
        self,
        process_name: str,
        event: "ProcessEvent",  # noqa: UP037
    ) -> None:
        style = _EVENT_STYLES.get(event.event_type, Style())
        text = Text.assemble(
            (f"[{process_name}]", _NAME_STYLE),
            " ",
            (event.event_type.value.upper(), style),
        )
        if event.pid is not None:
            _ = text.append(f" (pid={event.pid})", style=_DETAIL_STYLE)
        if event.returncode is not None:
            _ = text.append(f" returncode={event.returncode}", style=_DETAIL_STYLE)
        if event.message:
            _ = text.append(f" - {event.message}", style=style)

        self._console.print(text)


@final
class LoggingOutputSink:
    """Output sink that forwards process output to a structlog logger.

    Output lines are logged at debug level (stderr lines at info), and
    lifecycle events at info level, or warning for crashes and escalations.
    """

    __slots__ = ("_logger",)

    def __init__(self, logger: "FilteringBoundLogger | None" = None) -> None:  # noqa: UP037
        """Initialize the output sink.

        Args:
            logger: Logger receiving output. Drops everything if None.
        """
        self._logger = logger or get_null_logger()

    async def write_line(
        self,
        process_name: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        """Log a line of process output."""
        log = self._logger.info if stream == "stderr" else self._logger.debug
        log("process_output", process=process_name, pid=pid, stream=stream, line=line)

    async def write_event(
        self,
        process_name: str,
        event: "ProcessEvent",  # noqa: UP037
    ) -> None:
        """Log a process lifecycle event."""
        warn = event.event_type in (
            ProcessEventType.CRASHED,
            ProcessEventType.ESCALATED,
            ProcessEventType.SPAWN_FAILED,
        )
        log = self._logger.warning if warn else self._logger.info
        log(
            f"process_{event.event_type.value}",
            process=process_name,
            pid=event.pid,
            returncode=event.returncode,
            message=event.message,
            at=event.timestamp,
        )
