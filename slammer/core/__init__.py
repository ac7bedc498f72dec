"""
Core dispatch machinery.

Modules:
- work_queue: rendezvous queue between the dispatcher and workers
- cancellation: run-wide cancellation token and signal wiring
- worker_pool: worker loop and the pool that joins worker results
- dispatcher: input reading, dispatch and report assembly
- log_context: worker-aware logging filter
"""

from .cancellation import CancellationToken, RunCancelled
from .dispatcher import Dispatcher, LineReader
from .work_queue import QueueClosed, WorkQueue
from .worker_pool import WorkerPool, run_worker

__all__ = [
    "CancellationToken",
    "RunCancelled",
    "Dispatcher",
    "LineReader",
    "QueueClosed",
    "WorkQueue",
    "WorkerPool",
    "run_worker",
]
