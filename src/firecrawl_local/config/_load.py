"""Environment-driven configuration loading."""

import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from firecrawl_local.exceptions import ConfigLoadError

from ._models import SupervisorConfig

ENV_PREFIX = "FIRECRAWL_LOCAL_"

# Variables shared with the Firecrawl backend itself keep their upstream names.
_UPSTREAM_VARS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "FIRECRAWL_PATH": ("backend_root", Path),
    "REDIS_URL": ("broker_url", str),
    "FIRECRAWL_PORT": ("api_port", int),
}

_TUNING_VARS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "WORKERS": ("worker_count", int),
    "SETTLE_DELAY": ("settle_delay", float),
    "GRACE_PERIOD": ("grace_period", float),
    "NODE": ("node_executable", str),
    "REDIS_SERVER": ("broker_executable", str),
    "API_HOST": ("api_host", str),
}

_LOGGING_VARS: dict[str, str] = {
    "LOG_LEVEL": "level",
    "LOG_FORMAT": "format",
    "LOG_FILE": "file",
    "LOG_MAX_BYTES": "max_bytes",
    "LOG_BACKUP_COUNT": "backup_count",
}


def _convert(name: str, raw: str, converter: Callable[[str], Any]) -> Any:  # noqa: ANN401
    """Convert a raw environment value, wrapping failures in ConfigLoadError."""
    try:
        return converter(raw)
    except ValueError as e:
        msg = f"Invalid value for {name}: {raw!r}"
        raise ConfigLoadError(msg, key=name, value=raw) from e


def parse_env_vars(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect configuration overrides from environment variables.

    Args:
        environ: Environment mapping to read. Defaults to ``os.environ``.

    Returns:
        Dictionary of SupervisorConfig field overrides.

    Raises:
        ConfigLoadError: If a numeric variable cannot be parsed.
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    for name, (field, converter) in _UPSTREAM_VARS.items():
        raw = env.get(name)
        if raw:
            values[field] = _convert(name, raw, converter)

    for suffix, (field, converter) in _TUNING_VARS.items():
        name = f"{ENV_PREFIX}{suffix}"
        raw = env.get(name)
        if raw:
            values[field] = _convert(name, raw, converter)

    logging_values: dict[str, str] = {}
    for suffix, field in _LOGGING_VARS.items():
        raw = env.get(f"{ENV_PREFIX}{suffix}")
        if raw:
            logging_values[field] = raw.lower() if field != "file" else raw
    if env.get(f"{ENV_PREFIX}DEBUG"):
        logging_values["level"] = "debug"
    if logging_values:
        values["logging"] = logging_values

    return values


def load_config(
    environ: Mapping[str, str] | None = None,
    **overrides: Any,  # noqa: ANN401
) -> SupervisorConfig:
    """Resolve the supervisor configuration.

    Precedence, highest first: keyword overrides, environment variables,
    model defaults.

    Args:
        environ: Environment mapping to read. Defaults to ``os.environ``.
        **overrides: Explicit field values, typically from the CLI.

    Returns:
        The validated, immutable configuration.

    Raises:
        ConfigLoadError: If any value is invalid.
    """
    values = parse_env_vars(environ)
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return SupervisorConfig.model_validate(values)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first["loc"])
        msg = f"Invalid configuration for {key}: {first['msg']}"
        raise ConfigLoadError(msg, key=key) from e
