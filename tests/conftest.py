"""Pytest configuration shared by all MyTabs tests."""

import pytest

from mytabs.core.database import CounterValue, SqliteCounter
from mytabs.domain.tabs import TabStore


@pytest.fixture
def anyio_backend():
    # The update queue schedules asyncio tasks
    return "asyncio"


class MemoryCounter:
    """In-process VersionedCounter.

    conflicts makes that many compare_and_set calls fail before any succeed,
    the way a concurrent writer would.
    """

    def __init__(self, start: int = 0, conflicts: int = 0):
        self.values: dict[str, CounterValue] = {}
        if start:
            self.values["tab_id"] = CounterValue(start, 1)
        self.conflicts = conflicts
        self.attempts = 0

    async def get(self, key: str) -> CounterValue:
        return self.values.get(key, CounterValue(0, None))

    async def compare_and_set(self, key, expected_version, value) -> bool:
        self.attempts += 1
        if self.conflicts > 0:
            self.conflicts -= 1
            current = self.values.get(key, CounterValue(0, None))
            self.values[key] = CounterValue(current.value, (current.version or 0) + 1)
            return False
        current = self.values.get(key, CounterValue(0, None))
        if current.version != expected_version:
            return False
        self.values[key] = CounterValue(value, (current.version or 0) + 1)
        return True


class FakeTranscoder:
    """Stands in for ffmpeg: records calls, returns fixed bytes."""

    def __init__(self, output: bytes = b"OggS-converted"):
        self.output = output
        self.calls: list[bytes] = []

    async def __call__(self, data: bytes) -> bytes:
        self.calls.append(data)
        return self.output


@pytest.fixture
def tabs_dir(tmp_path):
    path = tmp_path / "tabs"
    path.mkdir()
    return path


@pytest.fixture
def transcoder():
    return FakeTranscoder()


@pytest.fixture
def store(tmp_path, tabs_dir, transcoder):
    counter = SqliteCounter(tmp_path / "mytabs.db")
    return TabStore(tabs_dir, counter, transcoder)
