"""Process specifications for the local Firecrawl backend.

This module provides factory functions that turn a SupervisorConfig into
the launch specifications of the broker, the queue workers and the API
server, grouped into stages in startup order.
"""

import shutil
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ._broker import BrokerProbe
from ._models import ProcessSpec, Stage, StageName

if TYPE_CHECKING:
    from firecrawl_local.config import SupervisorConfig


@dataclass(frozen=True, slots=True)
class SetupCheck:
    """Result of one backend prerequisite check.

    Attributes:
        name: What was checked.
        ok: Whether the prerequisite is satisfied.
        detail: Resolved path or a hint on how to fix it.
    """

    name: str
    ok: bool
    detail: str


def create_broker_spec(config: "SupervisorConfig") -> ProcessSpec:  # noqa: UP037
    """Create the launch specification for a local Redis broker.

    The server listens on the port named in the broker URL.

    Args:
        config: Supervisor configuration.

    Returns:
        ProcessSpec for the broker subprocess.
    """
    port = BrokerProbe(config.broker_url).port
    return ProcessSpec(
        name=StageName.BROKER.value,
        command=(config.broker_executable, "--port", str(port)),
    )


def _backend_env(config: "SupervisorConfig") -> dict[str, str]:  # noqa: UP037
    return {"REDIS_URL": config.broker_url}


def create_worker_specs(config: "SupervisorConfig") -> tuple[ProcessSpec, ...]:  # noqa: UP037
    """Create launch specifications for the queue workers.

    A single worker is named ``worker``; several are ``worker-1`` to
    ``worker-N``.

    Args:
        config: Supervisor configuration.

    Returns:
        One ProcessSpec per worker.
    """
    command = (config.node_executable, str(config.worker_script))
    names = (
        ["worker"]
        if config.worker_count == 1
        else [f"worker-{index}" for index in range(1, config.worker_count + 1)]
    )

    return tuple(
        ProcessSpec(
            name=name,
            command=command,
            cwd=config.api_dir,
            env=_backend_env(config),
        )
        for name in names
    )


def create_api_spec(config: "SupervisorConfig") -> ProcessSpec:  # noqa: UP037
    """Create the launch specification for the API server.

    Args:
        config: Supervisor configuration.

    Returns:
        ProcessSpec for the API subprocess, listening on ``api_port``.
    """
    return ProcessSpec(
        name=StageName.API.value,
        command=(config.node_executable, str(config.api_script)),
        cwd=config.api_dir,
        env={**_backend_env(config), "PORT": str(config.api_port)},
    )


def build_stages(config: "SupervisorConfig") -> tuple[Stage, Stage, Stage]:  # noqa: UP037
    """Build the broker, worker and API stages in startup order.

    Args:
        config: Supervisor configuration.

    Returns:
        The three stages, broker first.
    """
    return (
        Stage(name=StageName.BROKER, specs=(create_broker_spec(config),)),
        Stage(name=StageName.WORKERS, specs=create_worker_specs(config)),
        Stage(name=StageName.API, specs=(create_api_spec(config),)),
    )


def check_backend(config: "SupervisorConfig") -> list[SetupCheck]:  # noqa: UP037
    """Check that the executables and scripts the backend needs exist.

    Args:
        config: Supervisor configuration.

    Returns:
        One SetupCheck per prerequisite.
    """
    checks: list[SetupCheck] = []

    for label, executable in (
        ("broker executable", config.broker_executable),
        ("node executable", config.node_executable),
    ):
        resolved = shutil.which(executable)
        checks.append(
            SetupCheck(
                name=label,
                ok=resolved is not None,
                detail=resolved or f"'{executable}' not found on PATH",
            )
        )

    for label, script in (
        ("worker script", config.worker_script),
        ("api script", config.api_script),
    ):
        exists = script.is_file()
        checks.append(
            SetupCheck(
                name=label,
                ok=exists,
                detail=str(script)
                if exists
                else f"{script} missing, build Firecrawl first",
            )
        )

    return checks
