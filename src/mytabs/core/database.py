"""
SQLite storage for MyTabs: the durable, versioned counter used to allocate
tab identifiers.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import NamedTuple, Optional, Protocol

import anyio.to_thread
from loguru import logger

# Database schema version for migrations
SCHEMA_VERSION = 1


class CounterValue(NamedTuple):
    """Current value of a named counter and its version tag.

    version is None when the counter has never been written.
    """

    value: int
    version: Optional[int]


class VersionedCounter(Protocol):
    """Named integer counters with compare-and-set semantics."""

    async def get(self, key: str) -> CounterValue: ...

    async def compare_and_set(
        self, key: str, expected_version: Optional[int], value: int
    ) -> bool: ...


@contextmanager
def get_db_connection(db_path: Path):
    """Get a database connection with proper cleanup and concurrency support."""
    conn = sqlite3.connect(db_path, timeout=30.0)
    conn.row_factory = sqlite3.Row

    try:
        yield conn
    finally:
        conn.close()


def migrate_database(conn, current_version: int) -> None:
    """Migrate database from current_version to latest schema."""
    if current_version < 1:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS counters (
                key TEXT PRIMARY KEY,
                value INTEGER NOT NULL,
                version INTEGER NOT NULL
            )
        """)
        conn.commit()


def init_database(db_path: Path) -> None:
    """Create the database file and bring its schema up to date."""
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(db_path) as conn:
        # WAL mode allows reads while another connection writes
        conn.execute("PRAGMA journal_mode=WAL")
        current_version = conn.execute("PRAGMA user_version").fetchone()[0]
        if current_version < SCHEMA_VERSION:
            logger.info(
                f"Migrating database {db_path} from v{current_version} to v{SCHEMA_VERSION}"
            )
            migrate_database(conn, current_version)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            conn.commit()


class SqliteCounter:
    """VersionedCounter backed by the counters table.

    Every call opens its own connection and runs in a worker thread, so
    concurrent callers race only through the version check.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        init_database(db_path)

    async def get(self, key: str) -> CounterValue:
        return await anyio.to_thread.run_sync(self._get, key)

    async def compare_and_set(
        self, key: str, expected_version: Optional[int], value: int
    ) -> bool:
        return await anyio.to_thread.run_sync(
            self._compare_and_set, key, expected_version, value
        )

    def _get(self, key: str) -> CounterValue:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT value, version FROM counters WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return CounterValue(0, None)
        return CounterValue(row["value"], row["version"])

    def _compare_and_set(
        self, key: str, expected_version: Optional[int], value: int
    ) -> bool:
        with get_db_connection(self.db_path) as conn:
            if expected_version is None:
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO counters (key, value, version) VALUES (?, ?, 1)",
                    (key, value),
                )
            else:
                cursor = conn.execute(
                    "UPDATE counters SET value = ?, version = version + 1 "
                    "WHERE key = ? AND version = ?",
                    (value, key, expected_version),
                )
            conn.commit()
            return cursor.rowcount == 1
