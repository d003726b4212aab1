"""
Tab identifier allocation.

Identifiers come from a durable counter, so they are never reused across
restarts, and are then probed against the tabs folder so a counter that
drifted behind the folders (manual copies, migrations) cannot hand out an
identifier whose folder already exists.
"""

from pathlib import Path

import anyio
from loguru import logger

from mytabs.core.database import VersionedCounter

TAB_ID_COUNTER = "tab_id"


async def next_counter_value(counter: VersionedCounter, key: str) -> int:
    """Increment a counter with compare-and-set, retrying on version conflicts."""
    while True:
        current = await counter.get(key)
        candidate = current.value + 1
        if await counter.compare_and_set(key, current.version, candidate):
            return candidate
        logger.debug(f"Counter {key} changed during increment, retrying")


class IdAllocator:
    """Hands out tab identifiers whose folders do not exist yet."""

    def __init__(
        self, counter: VersionedCounter, tabs_dir: Path, key: str = TAB_ID_COUNTER
    ):
        self.counter = counter
        self.tabs_dir = tabs_dir
        self.key = key

    async def allocate_next_id(self) -> str:
        while True:
            candidate = str(await next_counter_value(self.counter, self.key))
            folder = anyio.Path(self.tabs_dir / candidate)
            if not await folder.exists():
                return candidate
            logger.info(f"Tab directory {folder} already exists, trying next ID")
