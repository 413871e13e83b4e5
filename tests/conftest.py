"""Shared test fixtures for firecrawl-local tests."""

import sys
from collections.abc import Callable

import pytest
from rich.console import Console

PythonCommand = Callable[[str], tuple[str, ...]]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def console() -> Console:
    return Console(
        width=100,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def python_command() -> PythonCommand:
    """Return a function building a command that runs Python source in a child."""

    def _command(source: str) -> tuple[str, ...]:
        return (sys.executable, "-u", "-c", source)

    return _command


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every configuration variable from the environment."""
    import os

    for name in list(os.environ):
        if name.startswith("FIRECRAWL_") or name == "REDIS_URL":
            monkeypatch.delenv(name)
