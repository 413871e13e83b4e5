"""Logging utilities for firecrawl-local.

Loggers are standalone structlog loggers; building one never touches the
global structlog configuration. Output goes to a log file or to stderr,
since stdout of the supervisor is left to the commands that print results.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Literal, TextIO, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

LogFormatType = Literal["json", "text"]

DEBUG_ENV = "FIRECRAWL_LOCAL_DEBUG"


def _log_level_from_string(level: str, *, respect_env: bool = False) -> int:
    """Map a level name to its logging constant.

    Unknown names fall back to INFO. With ``respect_env``, a non-empty
    FIRECRAWL_LOCAL_DEBUG forces DEBUG.
    """
    if respect_env and getenv(DEBUG_ENV, None):
        return logging.DEBUG

    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def _file_logger(
    path: Path, level: int, max_bytes: int | None, backup_count: int | None
) -> logging.Logger:
    # One stdlib logger per file; rebuilding it closes the previous handler
    stdlib_logger = logging.getLogger(f"firecrawl_local.file.{path.resolve()}")
    for old in list(stdlib_logger.handlers):
        stdlib_logger.removeHandler(old)
        old.close()
    stdlib_logger.propagate = False
    stdlib_logger.setLevel(level)

    handler: logging.FileHandler = (
        RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
        if max_bytes is not None and backup_count is not None
        else logging.FileHandler(path)
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    stdlib_logger.addHandler(handler)
    return stdlib_logger


def _create_logger(
    log_file_path: str | None,
    *,
    log_level: int = logging.INFO,
    log_format: LogFormatType = "json",
    max_bytes: int | None = None,
    backup_count: int | None = None,
    stream: TextIO | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone structlog logger.

    Args:
        log_file_path: File to append to, or None to write to ``stream``.
            Missing parent directories are created.
        log_level: Minimum level that is emitted.
        log_format: "json" for one object per line, "text" for
            ``timestamp [level] event key=value`` lines.
        max_bytes: Rotate the file once it reaches this size. Rotation
            needs both this and ``backup_count``.
        backup_count: Number of rotated files to keep.
        stream: Stream used when no file is given. Defaults to stderr.

    Returns:
        A configured FilteringBoundLogger instance.
    """
    raw_logger: object
    if not log_file_path:
        raw_logger = structlog.PrintLogger(stream or sys.stderr)
    else:
        path = Path(log_file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        raw_logger = _file_logger(path, log_level, max_bytes, backup_count)

    renderer: structlog.typing.Processor = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "json":
        processors.append(structlog.processors.dict_tracebacks)
    processors.append(renderer)

    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            raw_logger,
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
            context_class=dict,
        ),
    )


def create_supervisor_logger(
    *,
    level: str = "info",
    log_format: LogFormatType = "text",
    log_file: str = "",
    component: str = "",
    max_bytes: int | None = None,
    backup_count: int | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create the logger shared by the supervisor and its collaborators.

    Args:
        level: Level name (debug, info, warning, error). FIRECRAWL_LOCAL_DEBUG
            overrides it.
        log_format: Output format, either "json" or "text".
        log_file: Log file path; empty logs to stderr.
        component: Bound to every entry as ``component`` when set.
        max_bytes: Rotate the log file at this size.
        backup_count: Number of rotated log files to keep.

    Returns:
        A FilteringBoundLogger instance.
    """
    logger = _create_logger(
        log_file or None,
        log_level=_log_level_from_string(level, respect_env=True),
        log_format=log_format,
        max_bytes=max_bytes,
        backup_count=backup_count,
    )
    return logger.bind(component=component) if component else logger


def get_null_logger() -> "FilteringBoundLogger":  # noqa: UP037
    """Return a logger that drops every event."""
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.ReturnLogger(),
            wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
            context_class=dict,
        ),
    )
