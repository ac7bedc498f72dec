"""Fixed-size pool of statement workers.

Workers compete for statements on a shared WorkQueue, execute them against
one shared Database handle and each return a single WorkerResult when the
queue is exhausted or the run is cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from typing import Any, Callable, Coroutine

from slammer.connectors.base import Database
from slammer.core.cancellation import CancellationToken, RunCancelled
from slammer.core.log_context import CURRENT_WORKER_ID
from slammer.core.work_queue import WorkQueue
from slammer.models import WorkerResult

logger = logging.getLogger(__name__)


async def _pause(seconds: float) -> None:
    if seconds > 0:
        await asyncio.sleep(seconds)


async def run_worker(
    worker_id: int,
    *,
    queue: WorkQueue,
    database: Database,
    cancel: CancellationToken,
    pause_seconds: float = 0.0,
    debug: bool = False,
) -> WorkerResult:
    """
    Execute statements from `queue` until it is drained or `cancel` fires.

    Cancellation is checked once per received statement, before executing it;
    a statement received after cancellation is dropped. Failed statements
    count as work and as errors and are never retried. The pause applies only
    after a successful statement and ends early when `cancel` fires.

    Returns:
        The worker's result, finished exactly once.
    """
    CURRENT_WORKER_ID.set(worker_id)
    result = WorkerResult(worker_id=worker_id)
    logger.debug("Worker %d started", worker_id)

    try:
        while True:
            statement = await queue.get()
            if statement is None:
                break
            if cancel.is_set():
                logger.debug("Worker %d observed cancellation", worker_id)
                break

            start_perf = time.perf_counter()
            try:
                await database.execute(statement)
            except Exception as e:
                elapsed = time.perf_counter() - start_perf
                result.record(timedelta(seconds=elapsed), ok=False)
                if debug:
                    logger.warning("Worker #%d: %s - %s", worker_id, statement, e)
                continue

            elapsed = time.perf_counter() - start_perf
            result.record(timedelta(seconds=elapsed), ok=True)
            try:
                await cancel.guard(_pause(pause_seconds))
            except RunCancelled:
                logger.debug("Worker %d pause cut short by cancellation", worker_id)
                break
    except Exception as e:
        logger.error("Worker %d error: %s", worker_id, e)

    result.finish()
    logger.debug(
        "Worker %d finished: work=%d errors=%d",
        worker_id,
        result.work_count,
        result.error_count,
    )
    return result


class WorkerPool:
    """Owns the worker tasks of one run.

    Attributes:
        size: Number of workers started by `start`
    """

    def __init__(
        self,
        *,
        worker_factory: Callable[[int], Coroutine[Any, Any, WorkerResult]],
        size: int,
    ) -> None:
        """Initialize the worker pool.

        Args:
            worker_factory: Async function running one worker to completion.
                            Signature: (worker_id: int) -> Coroutine[..., WorkerResult]
            size: Number of workers to run
        """
        if size <= 0:
            raise ValueError(f"worker pool size must be positive, got {size}")
        self._worker_factory = worker_factory
        self.size = int(size)
        self._worker_tasks: dict[int, asyncio.Task[WorkerResult]] = {}
        self._next_worker_id = 0

    def spawn_one(self) -> int:
        """Spawn a single new worker and return its ID."""
        wid = int(self._next_worker_id)
        self._next_worker_id += 1
        task = asyncio.create_task(
            self._worker_factory(wid), name=f"slammer-worker-{wid}"
        )
        self._worker_tasks[wid] = task
        return wid

    def start(self) -> None:
        """Spawn every worker of the pool."""
        if self._worker_tasks:
            raise RuntimeError("worker pool already started")
        logger.info("[WorkerPool] Starting %d workers", self.size)
        for _ in range(self.size):
            self.spawn_one()

    async def join(self) -> list[WorkerResult]:
        """Wait for every worker and return their results in completion order."""
        results: list[WorkerResult] = []
        for fut in asyncio.as_completed(list(self._worker_tasks.values())):
            results.append(await fut)
        logger.info("[WorkerPool] All %d workers finished", len(results))
        return results
