"""
Database handle interface shared by all drivers.

A Database is one handle shared by every worker; implementations must allow
concurrent `execute` calls.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager, suppress
from typing import Any, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Database(Protocol):
    async def initialize(self) -> None: ...

    async def execute(self, statement: str) -> None:
        """Run one statement; raise on failure."""
        ...

    async def close(self) -> None: ...


class ThreadedConnectionPool:
    """
    Connection pool for blocking DB-API drivers.

    Connections are created lazily, up to `max_size`, and every blocking call
    runs on a private thread pool sized to match. Subclasses implement
    `_connect()`.
    """

    def __init__(self, *, max_size: int, pool_name: str) -> None:
        self.max_size = max(1, int(max_size))
        self.pool_name = pool_name
        self._idle: List[Any] = []
        self._all: List[Any] = []
        self._lock = asyncio.Lock()
        self._slots = asyncio.Semaphore(self.max_size)
        self._executor: Optional[ThreadPoolExecutor] = None

    def _connect(self) -> Any:
        raise NotImplementedError

    def _run_in_executor(self, func, *args):
        loop = asyncio.get_running_loop()
        return loop.run_in_executor(self._executor, func, *args)

    async def initialize(self) -> None:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_size,
                thread_name_prefix=f"slammer-{self.pool_name}",
            )
            logger.info(f"[{self.pool_name}] Pool ready (max size: {self.max_size})")

    @asynccontextmanager
    async def get_connection(self):
        """
        Check out a connection (async context manager).

        A connection is discarded instead of returned when the statement
        failed with a disconnect-class error (see `_is_disconnect`) or the
        caller was cancelled mid-statement.
        """
        if self._executor is None:
            await self.initialize()

        async with self._slots:
            async with self._lock:
                conn = self._idle.pop() if self._idle else None
            if conn is None:
                conn = await self._run_in_executor(self._connect)
                async with self._lock:
                    self._all.append(conn)

            healthy = True
            try:
                yield conn
            except Exception as exc:
                healthy = not self._is_disconnect(exc)
                raise
            except BaseException:
                healthy = False
                raise
            finally:
                async with self._lock:
                    if healthy:
                        self._idle.append(conn)
                    else:
                        if conn in self._all:
                            self._all.remove(conn)
                if not healthy:
                    with suppress(Exception):
                        await self._run_in_executor(conn.close)

    def _is_disconnect(self, exc: Exception) -> bool:
        return False

    @staticmethod
    def _execute_blocking(conn: Any, statement: str) -> None:
        cursor = conn.cursor()
        try:
            cursor.execute(statement)
            # Drain any result set so the connection can be reused.
            if cursor.description is not None:
                cursor.fetchall()
        finally:
            cursor.close()

    async def execute(self, statement: str) -> None:
        async with self.get_connection() as conn:
            await self._run_in_executor(self._execute_blocking, conn, statement)

    async def close(self) -> None:
        async with self._lock:
            conns = list(self._all)
            self._all.clear()
            self._idle.clear()

        for conn in conns:
            try:
                await self._run_in_executor(conn.close)
            except Exception as exc:
                logger.warning(f"[{self.pool_name}] Failed to close connection: {exc}")

        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
        logger.info(f"[{self.pool_name}] Pool closed ({len(conns)} connections)")
