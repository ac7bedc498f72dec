#!/usr/bin/env python3
"""
Unit tests for the worker loop and WorkerPool.

Uses an in-memory database; no DB connections.
"""

import sys
import asyncio
import logging
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from fakes import FakeDatabase
from slammer.core import worker_pool
from slammer.core.cancellation import CancellationToken
from slammer.core.work_queue import WorkQueue
from slammer.core.worker_pool import WorkerPool, run_worker

pytestmark = pytest.mark.asyncio


async def _feed(queue: WorkQueue, statements: list[str]) -> None:
    for statement in statements:
        await queue.put(statement)
    queue.close()


async def test_worker_counts_every_attempt():
    queue = WorkQueue()
    database = FakeDatabase()
    cancel = CancellationToken()

    worker = asyncio.create_task(
        run_worker(0, queue=queue, database=database, cancel=cancel)
    )
    await _feed(queue, ["SELECT 1", "FAIL 1", "SELECT 2", "FAIL 2", "SELECT 3"])
    result = await asyncio.wait_for(worker, timeout=2.0)

    assert result.worker_id == 0
    assert result.work_count == 5
    assert result.error_count == 2
    assert result.end is not None
    assert result.start <= result.end
    assert result.db_time.total_seconds() >= 0
    assert database.statements == ["SELECT 1", "FAIL 1", "SELECT 2", "FAIL 2", "SELECT 3"]


async def test_worker_with_no_work_still_returns_result():
    queue = WorkQueue()
    queue.close()

    result = await run_worker(
        3, queue=queue, database=FakeDatabase(), cancel=CancellationToken()
    )

    assert result.worker_id == 3
    assert result.work_count == 0
    assert result.error_count == 0
    assert result.end is not None


async def test_pause_only_after_success(monkeypatch):
    pauses: list[float] = []

    async def _record_pause(seconds: float) -> None:
        pauses.append(seconds)

    monkeypatch.setattr(worker_pool, "_pause", _record_pause)

    queue = WorkQueue()
    worker = asyncio.create_task(
        run_worker(
            0,
            queue=queue,
            database=FakeDatabase(),
            cancel=CancellationToken(),
            pause_seconds=0.25,
        )
    )
    await _feed(queue, ["SELECT 1", "FAIL", "FAIL", "SELECT 2"])
    result = await asyncio.wait_for(worker, timeout=2.0)

    assert result.work_count == 4
    assert pauses == [0.25, 0.25]


async def test_cancelled_worker_drops_received_statement():
    queue = WorkQueue()
    database = FakeDatabase()
    cancel = CancellationToken()
    cancel.cancel()

    worker = asyncio.create_task(
        run_worker(0, queue=queue, database=database, cancel=cancel)
    )
    await queue.put("SELECT 1")
    result = await asyncio.wait_for(worker, timeout=2.0)

    assert result.work_count == 0
    assert database.executed == []


async def test_cancellation_interrupts_pause():
    queue = WorkQueue()
    cancel = CancellationToken()
    loop = asyncio.get_running_loop()
    database = FakeDatabase(on_execute=lambda statement: loop.call_later(0.05, cancel.cancel))

    worker = asyncio.create_task(
        run_worker(0, queue=queue, database=database, cancel=cancel, pause_seconds=30.0)
    )
    await queue.put("SELECT 1")
    result = await asyncio.wait_for(worker, timeout=2.0)

    assert result.work_count == 1
    assert result.error_count == 0
    assert result.end is not None


async def test_debug_logs_failed_statements(caplog):
    queue = WorkQueue()
    caplog.set_level(logging.WARNING, logger="slammer.core.worker_pool")

    worker = asyncio.create_task(
        run_worker(
            7,
            queue=queue,
            database=FakeDatabase(),
            cancel=CancellationToken(),
            debug=True,
        )
    )
    await _feed(queue, ["FAIL here"])
    await asyncio.wait_for(worker, timeout=2.0)

    messages = [r.getMessage() for r in caplog.records]
    assert any("Worker #7: FAIL here" in m for m in messages)


async def test_failed_statements_silent_without_debug(caplog):
    queue = WorkQueue()
    caplog.set_level(logging.WARNING, logger="slammer.core.worker_pool")

    worker = asyncio.create_task(
        run_worker(0, queue=queue, database=FakeDatabase(), cancel=CancellationToken())
    )
    await _feed(queue, ["FAIL here"])
    result = await asyncio.wait_for(worker, timeout=2.0)

    assert result.error_count == 1
    assert not [r for r in caplog.records if "FAIL here" in r.getMessage()]


async def test_pool_returns_one_result_per_worker():
    queue = WorkQueue()
    database = FakeDatabase(delay=0.001)
    cancel = CancellationToken()

    pool = WorkerPool(
        worker_factory=lambda wid: run_worker(
            wid, queue=queue, database=database, cancel=cancel
        ),
        size=4,
    )
    pool.start()

    await _feed(queue, [f"SELECT {i}" for i in range(20)])
    results = await asyncio.wait_for(pool.join(), timeout=5.0)

    assert sorted(r.worker_id for r in results) == [0, 1, 2, 3]
    assert sum(r.work_count for r in results) == 20
    assert all(r.end is not None for r in results)


async def test_statements_tagged_with_worker_id():
    queue = WorkQueue()
    database = FakeDatabase(delay=0.001)
    cancel = CancellationToken()

    pool = WorkerPool(
        worker_factory=lambda wid: run_worker(
            wid, queue=queue, database=database, cancel=cancel
        ),
        size=3,
    )
    pool.start()
    await _feed(queue, [f"SELECT {i}" for i in range(12)])
    results = await asyncio.wait_for(pool.join(), timeout=5.0)

    per_worker = {r.worker_id: r.work_count for r in results}
    seen: dict[int, int] = {}
    for wid, _ in database.executed:
        seen[wid] = seen.get(wid, 0) + 1
    assert {k: v for k, v in per_worker.items() if v} == seen


async def test_pool_rejects_non_positive_size():
    with pytest.raises(ValueError):
        WorkerPool(worker_factory=lambda wid: None, size=0)


async def test_pool_cannot_start_twice():
    queue = WorkQueue()
    queue.close()
    pool = WorkerPool(
        worker_factory=lambda wid: run_worker(
            wid, queue=queue, database=FakeDatabase(), cancel=CancellationToken()
        ),
        size=1,
    )
    pool.start()
    with pytest.raises(RuntimeError):
        pool.start()
    await pool.join()
