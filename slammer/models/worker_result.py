"""Per-worker execution statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta


@dataclass
class WorkerResult:
    """
    Statistics accumulated by one worker over its lifetime.

    Owned and mutated only by its worker; handed to the pool once the worker
    terminates and not touched afterwards.

    Attributes:
        worker_id: Index of the worker within the pool
        start: When the worker started
        end: When the worker terminated (None while running)
        db_time: Cumulative time spent inside statement execution
        work_count: Statements attempted, successful or not
        error_count: Statements that failed
    """

    worker_id: int
    start: datetime = field(default_factory=lambda: datetime.now(UTC))
    end: datetime | None = None
    db_time: timedelta = field(default_factory=timedelta)
    work_count: int = 0
    error_count: int = 0

    def record(self, elapsed: timedelta, *, ok: bool) -> None:
        self.db_time += elapsed
        self.work_count += 1
        if not ok:
            self.error_count += 1

    def finish(self) -> WorkerResult:
        end = datetime.now(UTC)
        # Wall clock can step backwards; keep start <= end.
        self.end = max(end, self.start)
        return self

    @property
    def duration(self) -> timedelta:
        if self.end is None:
            return timedelta(0)
        return self.end - self.start
