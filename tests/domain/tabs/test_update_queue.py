"""Tests for per-key serialized job execution."""

import asyncio

import pytest

from mytabs.domain.tabs.update_queue import UpdateQueue


@pytest.mark.anyio
async def test_jobs_for_one_key_run_in_submission_order():
    queue = UpdateQueue()
    order = []

    def make_job(i):
        async def job():
            # Later jobs sleep less, so only the queue keeps them ordered
            await asyncio.sleep(0.001 * (10 - i))
            order.append(i)
        return job

    tasks = [queue.submit("1", make_job(i)) for i in range(10)]
    await asyncio.gather(*tasks)

    assert order == list(range(10))


@pytest.mark.anyio
async def test_at_most_one_job_per_key_runs_at_a_time():
    queue = UpdateQueue()
    running = 0
    max_running = 0

    async def job():
        nonlocal running, max_running
        running += 1
        max_running = max(max_running, running)
        await asyncio.sleep(0.001)
        running -= 1

    await asyncio.gather(*[queue.submit("1", job) for _ in range(5)])

    assert max_running == 1


@pytest.mark.anyio
async def test_failed_job_does_not_block_successor():
    queue = UpdateQueue()
    ran = []

    async def failing():
        raise RuntimeError("boom")

    async def succeeding():
        ran.append("second")

    first = queue.submit("1", failing)
    second = queue.submit("1", succeeding)

    with pytest.raises(RuntimeError, match="boom"):
        await first
    await second

    assert ran == ["second"]


@pytest.mark.anyio
async def test_different_keys_run_concurrently():
    queue = UpdateQueue()
    started = asyncio.Event()
    release = asyncio.Event()

    async def blocker():
        started.set()
        await release.wait()

    async def other():
        release.set()

    blocked = queue.submit("1", blocker)
    await started.wait()
    # Would deadlock if key "2" waited behind key "1"
    await asyncio.wait_for(queue.submit("2", other), timeout=1)
    await blocked


@pytest.mark.anyio
async def test_settled_chains_are_pruned():
    queue = UpdateQueue()

    async def job():
        await asyncio.sleep(0)

    task = queue.submit("1", job)
    assert queue.pending_keys() == ["1"]

    await task
    await asyncio.sleep(0)  # let done callbacks run

    assert queue.pending_keys() == []


@pytest.mark.anyio
async def test_drain_waits_for_abandoned_jobs():
    queue = UpdateQueue()
    done = []

    async def job():
        await asyncio.sleep(0.001)
        done.append(True)

    queue.submit("1", job)
    queue.submit("2", job)
    await queue.drain()

    assert done == [True, True]
