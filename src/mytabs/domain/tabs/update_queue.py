"""
Per-key serialized execution of async jobs.

Each key has a chain of pending jobs. A new job starts only after the job
submitted before it for the same key has settled, whether it succeeded or
failed, so jobs for one key run one at a time in submission order. Jobs for
different keys do not wait on each other.
"""

import asyncio
from functools import partial
from typing import Awaitable, Callable, Optional

from loguru import logger

Job = Callable[[], Awaitable[None]]


class UpdateQueue:
    """Owns the tail of every key's job chain.

    A key's entry is removed once its last job settles with nothing queued
    behind it.
    """

    def __init__(self):
        self._tails: dict[str, asyncio.Task] = {}

    def submit(self, key: str, job: Job) -> asyncio.Task:
        """Schedule job after everything already queued for key.

        Must be called from inside a running event loop. The tail is
        replaced before this returns, so the next submit() for the same key
        chains behind this job.
        """
        previous = self._tails.get(key)
        task = asyncio.ensure_future(self._run_after(previous, job))
        self._tails[key] = task
        task.add_done_callback(partial(self._settled, key))
        return task

    def pending_keys(self) -> list[str]:
        return list(self._tails)

    async def drain(self) -> None:
        """Wait until every job queued so far has settled."""
        while self._tails:
            await asyncio.wait(list(self._tails.values()))

    @staticmethod
    async def _run_after(previous: Optional[asyncio.Task], job: Job) -> None:
        if previous is not None and not previous.done():
            # wait() never raises the predecessor's exception
            await asyncio.wait([previous])
        await job()

    def _settled(self, key: str, task: asyncio.Task) -> None:
        if self._tails.get(key) is task:
            del self._tails[key]

        # Marks the exception retrieved; the submitter may have stopped waiting
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Queued update for {key} failed: {task.exception()}")
