#!/usr/bin/env python3
"""
Unit tests for WorkQueue.

Covers rendezvous puts, draining after close, and competing consumers.
"""

import sys
import asyncio
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from slammer.core.work_queue import QueueClosed, WorkQueue

pytestmark = pytest.mark.asyncio


async def test_put_blocks_until_received():
    """A put only completes once a consumer has taken the item."""
    queue = WorkQueue()
    put_task = asyncio.create_task(queue.put("SELECT 1"))

    await asyncio.sleep(0.05)
    assert not put_task.done()

    assert await queue.get() == "SELECT 1"
    await asyncio.wait_for(put_task, timeout=1.0)


async def test_get_returns_none_after_close():
    queue = WorkQueue()
    queue.close()

    assert queue.closed
    assert await queue.get() is None
    assert await queue.get() is None


async def test_close_wakes_blocked_consumers():
    queue = WorkQueue()
    getters = [asyncio.create_task(queue.get()) for _ in range(3)]
    await asyncio.sleep(0.01)

    queue.close()
    results = await asyncio.wait_for(asyncio.gather(*getters), timeout=1.0)

    assert results == [None, None, None]


async def test_put_after_close_raises():
    queue = WorkQueue()
    queue.close()

    with pytest.raises(QueueClosed):
        await queue.put("SELECT 1")


async def test_pending_item_drained_after_close():
    """An item already handed over is still delivered after close."""
    queue = WorkQueue()
    put_task = asyncio.create_task(queue.put("SELECT 1"))
    await asyncio.sleep(0.01)

    queue.close()

    assert await queue.get() == "SELECT 1"
    assert await queue.get() is None
    await asyncio.wait_for(put_task, timeout=1.0)


async def test_each_item_delivered_to_exactly_one_consumer():
    queue = WorkQueue()
    received: list[str] = []

    async def consumer():
        while True:
            item = await queue.get()
            if item is None:
                return
            received.append(item)
            await asyncio.sleep(0)

    consumers = [asyncio.create_task(consumer()) for _ in range(4)]
    statements = [f"SELECT {i}" for i in range(50)]
    for statement in statements:
        await queue.put(statement)
    queue.close()
    await asyncio.wait_for(asyncio.gather(*consumers), timeout=2.0)

    assert sorted(received) == sorted(statements)
    assert len(received) == len(set(received))
