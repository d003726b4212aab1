#!/usr/bin/env python3
"""Tests for database functions."""

import pytest

from mytabs.core.database import (
    SCHEMA_VERSION,
    CounterValue,
    SqliteCounter,
    get_db_connection,
    init_database,
)


def test_init_database_sets_schema_version(tmp_path):
    db_path = tmp_path / "nested" / "mytabs.db"
    init_database(db_path)

    with get_db_connection(db_path) as conn:
        assert conn.execute("PRAGMA user_version").fetchone()[0] == SCHEMA_VERSION
        tables = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
    assert "counters" in tables


def test_init_database_is_repeatable(tmp_path):
    db_path = tmp_path / "mytabs.db"
    init_database(db_path)
    init_database(db_path)

    with get_db_connection(db_path) as conn:
        assert conn.execute("PRAGMA user_version").fetchone()[0] == SCHEMA_VERSION


@pytest.mark.anyio
async def test_unwritten_counter_has_no_version(tmp_path):
    counter = SqliteCounter(tmp_path / "mytabs.db")
    assert await counter.get("tab_id") == CounterValue(0, None)


@pytest.mark.anyio
async def test_compare_and_set_bumps_version(tmp_path):
    counter = SqliteCounter(tmp_path / "mytabs.db")

    assert await counter.compare_and_set("tab_id", None, 1)
    first = await counter.get("tab_id")
    assert first.value == 1

    assert await counter.compare_and_set("tab_id", first.version, 2)
    second = await counter.get("tab_id")
    assert second.value == 2
    assert second.version != first.version


@pytest.mark.anyio
async def test_first_write_loses_to_existing_row(tmp_path):
    counter = SqliteCounter(tmp_path / "mytabs.db")
    assert await counter.compare_and_set("tab_id", None, 1)
    assert not await counter.compare_and_set("tab_id", None, 5)
    assert (await counter.get("tab_id")).value == 1


@pytest.mark.anyio
async def test_counters_are_independent(tmp_path):
    counter = SqliteCounter(tmp_path / "mytabs.db")
    await counter.compare_and_set("tab_id", None, 3)
    assert await counter.get("other") == CounterValue(0, None)
