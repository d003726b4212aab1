"""Tests for tab identifier allocation."""

import asyncio

import pytest

from conftest import MemoryCounter
from mytabs.core.database import SqliteCounter
from mytabs.domain.tabs.allocator import IdAllocator, next_counter_value


@pytest.mark.anyio
async def test_first_id_is_one(tabs_dir):
    allocator = IdAllocator(MemoryCounter(), tabs_dir)
    assert await allocator.allocate_next_id() == "1"
    assert await allocator.allocate_next_id() == "2"


@pytest.mark.anyio
async def test_counter_conflicts_are_retried():
    counter = MemoryCounter(conflicts=3)
    assert await next_counter_value(counter, "tab_id") == 1
    assert counter.attempts == 4


@pytest.mark.anyio
async def test_existing_folders_are_skipped(tabs_dir):
    (tabs_dir / "1").mkdir()
    (tabs_dir / "2").mkdir()

    allocator = IdAllocator(MemoryCounter(), tabs_dir)

    assert await allocator.allocate_next_id() == "3"


@pytest.mark.anyio
async def test_counter_survives_restart(tmp_path, tabs_dir):
    db_path = tmp_path / "mytabs.db"
    first = IdAllocator(SqliteCounter(db_path), tabs_dir)
    assert await first.allocate_next_id() == "1"
    assert await first.allocate_next_id() == "2"

    second = IdAllocator(SqliteCounter(db_path), tabs_dir)
    assert await second.allocate_next_id() == "3"


@pytest.mark.anyio
async def test_concurrent_allocations_are_unique(tmp_path, tabs_dir):
    for existing in ("2", "5", "7"):
        (tabs_dir / existing).mkdir()
    before = {p.name for p in tabs_dir.iterdir()}

    allocator = IdAllocator(SqliteCounter(tmp_path / "mytabs.db"), tabs_dir)
    ids = await asyncio.gather(*[allocator.allocate_next_id() for _ in range(20)])

    assert len(set(ids)) == 20
    assert not set(ids) & before


@pytest.mark.anyio
async def test_sqlite_compare_and_set_rejects_stale_version(tmp_path):
    counter = SqliteCounter(tmp_path / "mytabs.db")

    initial = await counter.get("tab_id")
    assert initial.value == 0
    assert initial.version is None

    assert await counter.compare_and_set("tab_id", None, 1)
    # A second writer that read the same (missing) row loses
    assert not await counter.compare_and_set("tab_id", None, 1)

    current = await counter.get("tab_id")
    assert await counter.compare_and_set("tab_id", current.version, 2)
    assert not await counter.compare_and_set("tab_id", current.version, 3)
    assert (await counter.get("tab_id")).value == 2
