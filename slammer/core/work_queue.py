"""Zero-buffered work queue between the dispatcher and the workers."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import Optional


class QueueClosed(Exception):
    """Raised when putting onto a closed WorkQueue."""


class WorkQueue:
    """
    Single-producer, multi-consumer rendezvous queue of statements.

    `put` returns only after some worker has taken the item, so a slow pool
    holds the producer back. After `close`, `get` drains anything still held
    and then returns None to every caller.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=1)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def put(self, statement: str) -> None:
        if self._closed.is_set():
            raise QueueClosed("put on closed WorkQueue")
        await self._queue.put(statement)
        # Rendezvous: wait until a consumer has taken it.
        await self._queue.join()

    def close(self) -> None:
        self._closed.set()

    async def get(self) -> Optional[str]:
        while True:
            if not self._queue.empty():
                return self._take(self._queue.get_nowait())
            if self._closed.is_set():
                return None

            getter = asyncio.ensure_future(self._queue.get())
            closer = asyncio.ensure_future(self._closed.wait())
            try:
                await asyncio.wait(
                    {getter, closer}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                closer.cancel()
                if not getter.done():
                    getter.cancel()
                    with suppress(asyncio.CancelledError):
                        await getter

            if getter.done() and not getter.cancelled():
                return self._take(getter.result())

    def _take(self, statement: str) -> str:
        self._queue.task_done()
        return statement
