from pathlib import Path
from typing import TYPE_CHECKING, Literal

import pytest

if TYPE_CHECKING:
    from firecrawl_local.supervisor import ProcessEvent


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.unit)


class RecordingSink:
    """Output sink that keeps every line and event it receives."""

    def __init__(self) -> None:
        self.lines: list[tuple[str, str, str]] = []
        self.events: list[ProcessEvent] = []

    async def write_line(
        self,
        process_name: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        self.lines.append((process_name, stream, line))

    async def write_event(self, process_name: str, event: "ProcessEvent") -> None:
        self.events.append(event)

    def event_types(self, process_name: str) -> list[str]:
        return [
            event.event_type.value
            for event in self.events
            if event.process_name == process_name
        ]

    async def wait_for_line(
        self, process_name: str, line: str, timeout: float = 5.0
    ) -> None:
        """Wait until a process has written a given stdout line."""
        import anyio

        with anyio.fail_after(timeout):
            while (process_name, "stdout", line) not in self.lines:
                await anyio.sleep(0.01)

    def started_order(self) -> list[str]:
        return [
            event.process_name
            for event in self.events
            if event.event_type.value == "started"
        ]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
