"""
Worker-aware logging helpers.

Each worker task sets CURRENT_WORKER_ID on start. Tasks copy the context they
were created in, so the value never leaks between workers. The filter stamps
it onto every record so formatters can print `%(worker_id)s`.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Optional

CURRENT_WORKER_ID: ContextVar[Optional[int]] = ContextVar(
    "CURRENT_WORKER_ID", default=None
)


class WorkerContextFilter(logging.Filter):
    """Attach `worker_id` to records ("-" outside a worker)."""

    def filter(self, record: logging.LogRecord) -> bool:
        worker_id = getattr(record, "worker_id", None)
        if worker_id is None:
            worker_id = CURRENT_WORKER_ID.get()
        record.worker_id = "-" if worker_id is None else str(worker_id)
        return True
