"""
Statement dispatcher.

Reads statements from a line-oriented stream, hands them to the worker pool
through a rendezvous WorkQueue and, once every worker has terminated, builds
the run report.
"""

from __future__ import annotations

import asyncio
import io
import logging
import threading
from datetime import UTC, datetime
from typing import Any, Optional, TextIO

from slammer.connectors.base import Database
from slammer.core.cancellation import CancellationToken, RunCancelled
from slammer.core.work_queue import WorkQueue
from slammer.core.worker_pool import WorkerPool, run_worker
from slammer.models import RunConfig, RunReport

logger = logging.getLogger(__name__)

LINE = "line"
READ_ERROR = "error"
EOF = "eof"


class LineReader:
    """
    Reads a blocking text stream on a daemon thread, one line per request.

    Each `next()` call lets the thread read exactly one more line, so nothing
    is read ahead of demand. The thread is a daemon: a read blocked on an
    interactive terminal never keeps the process alive after the run ends.

    Text wrappers over byte streams are switched to `surrogateescape` so a
    line that is not valid in the stream encoding still arrives as a line.
    """

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._items: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()
        self._credit = threading.Semaphore(0)
        self._stopped = threading.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        if isinstance(self._stream, io.TextIOWrapper):
            self._stream.reconfigure(errors="surrogateescape")
        self._thread = threading.Thread(
            target=self._read_loop, name="slammer-stdin", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()
        self._credit.release()

    async def next(self) -> tuple[str, Any]:
        """Return (LINE, text), (READ_ERROR, exception) or (EOF, None)."""
        self._credit.release()
        return await self._items.get()

    def _read_loop(self) -> None:
        if self._loop is None:
            raise RuntimeError("LineReader not started")
        while True:
            self._credit.acquire()
            if self._stopped.is_set():
                return
            try:
                raw = self._stream.readline()
            except (OSError, UnicodeDecodeError, ValueError) as exc:
                item: tuple[str, Any] = (READ_ERROR, exc)
            else:
                item = (EOF, None) if raw == "" else (LINE, raw)
            try:
                self._loop.call_soon_threadsafe(self._items.put_nowait, item)
            except RuntimeError:
                # Loop already closed; nobody is waiting any more.
                return
            if item[0] == EOF:
                return


class Dispatcher:
    """
    Single producer feeding a fixed pool of workers.

    Attributes:
        total_dispatched: Statements received by some worker
        read_errors: Non-EOF read failures seen on the input stream
        stopped_reason: Set when input was abandoned before EOF
    """

    def __init__(
        self,
        config: RunConfig,
        database: Database,
        cancel: CancellationToken,
        *,
        stream: TextIO,
    ) -> None:
        self.config = config
        self.database = database
        self.cancel = cancel
        self._stream = stream
        self.total_dispatched = 0
        self.read_errors = 0
        self.stopped_reason: Optional[str] = None

    async def run(self) -> RunReport:
        """Dispatch the whole stream and return the report once all workers end."""
        started_at = datetime.now(UTC)
        queue = WorkQueue()

        def _worker_factory(worker_id: int):
            return run_worker(
                worker_id,
                queue=queue,
                database=self.database,
                cancel=self.cancel,
                pause_seconds=self.config.pause_seconds,
                debug=self.config.debug,
            )

        pool = WorkerPool(worker_factory=_worker_factory, size=self.config.workers)
        logger.info(
            "Dispatching statements to %d workers (driver=%s, pause=%.3fs)",
            self.config.workers,
            self.config.driver,
            self.config.pause_seconds,
        )
        pool.start()

        try:
            await self._feed(queue)
        finally:
            queue.close()

        results = await pool.join()
        finished_at = datetime.now(UTC)
        logger.info(
            "Run finished: dispatched=%d workers=%d cancelled=%s",
            self.total_dispatched,
            len(results),
            self.cancel.is_set(),
        )
        return RunReport.build(
            total_dispatched=self.total_dispatched,
            results=results,
            started_at=started_at,
            finished_at=finished_at,
            cancelled=self.cancel.is_set(),
            read_errors=self.read_errors,
            stopped_reason=self.stopped_reason,
        )

    async def _feed(self, queue: WorkQueue) -> None:
        reader = LineReader(self._stream)
        reader.start()
        consecutive_errors = 0
        try:
            while True:
                try:
                    kind, value = await self.cancel.guard(reader.next())
                except RunCancelled:
                    logger.info("Input reading stopped by cancellation")
                    return

                if kind == EOF:
                    return

                if kind == READ_ERROR:
                    self.read_errors += 1
                    consecutive_errors += 1
                    if self.config.debug:
                        logger.warning("Failed to read input line: %s", value)
                    if consecutive_errors >= self.config.max_read_errors:
                        self.stopped_reason = (
                            f"input abandoned after {consecutive_errors} "
                            f"consecutive read errors"
                        )
                        logger.error(
                            "Giving up on input after %d consecutive read errors (last: %s)",
                            consecutive_errors,
                            value,
                        )
                        return
                    continue

                consecutive_errors = 0
                statement = value.rstrip("\r\n")
                try:
                    await self.cancel.guard(queue.put(statement))
                except RunCancelled:
                    logger.info("Dispatch stopped by cancellation")
                    return
                self.total_dispatched += 1
        finally:
            reader.stop()
