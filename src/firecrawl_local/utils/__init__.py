"""Shared utilities for firecrawl-local."""

from ._logging import LogFormatType, create_supervisor_logger, get_null_logger

__all__ = ["LogFormatType", "create_supervisor_logger", "get_null_logger"]
