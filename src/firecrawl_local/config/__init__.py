"""Configuration for the local Firecrawl backend supervisor."""

from ._load import ENV_PREFIX, load_config, parse_env_vars
from ._models import (
    API_SCRIPT,
    WORKER_SCRIPT,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ReadinessPolicy,
    SupervisorConfig,
)

__all__ = [
    "API_SCRIPT",
    "ENV_PREFIX",
    "WORKER_SCRIPT",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ReadinessPolicy",
    "SupervisorConfig",
    "load_config",
    "parse_env_vars",
]
