"""
Report Models

Read-only view over the results collected from every worker of a run.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from slammer.models.worker_result import WorkerResult

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def ratio(numerator: float, denominator: float) -> float:
    """Float division where a zero denominator yields nan (0/0) or inf."""
    if denominator == 0:
        if numerator == 0:
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def format_duration(seconds: float) -> str:
    """Render seconds the way Go prints a time.Duration ("1m2.5s", "350ms")."""
    if seconds == 0:
        return "0s"
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    if seconds < 1e-6:
        return f"{sign}{seconds * 1e9:.0f}ns"
    if seconds < 1e-3:
        return f"{sign}{_trim(seconds * 1e6)}µs"
    if seconds < 1:
        return f"{sign}{_trim(seconds * 1e3)}ms"
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    out = sign
    if hours:
        out += f"{int(hours)}h"
    if hours or minutes:
        out += f"{int(minutes)}m"
    return out + f"{_trim(secs)}s"


def _trim(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return text or "0"


class WorkerReport(BaseModel):
    """Statistics for one worker, with derived ratios."""

    worker_id: int = Field(..., description="Worker index")
    start: datetime = Field(..., description="Worker start time")
    end: datetime = Field(..., description="Worker end time")
    duration_seconds: float = Field(..., description="Worker wall-clock time")
    db_time_seconds: float = Field(..., description="Time spent executing statements")
    work_count: int = Field(..., description="Statements attempted (including failures)")
    error_count: int = Field(..., description="Statements that failed")
    work_share: float = Field(..., description="Fraction of all dispatched statements")
    work_per_db_second: float = Field(..., description="Attempts per second of DB time")
    error_share: float = Field(..., description="Fraction of this worker's attempts that failed")
    errors_per_second: float = Field(..., description="Errors per wall-clock second")

    @classmethod
    def from_result(cls, result: WorkerResult, total_dispatched: int) -> WorkerReport:
        end = result.end or result.start
        duration = (end - result.start).total_seconds()
        db_seconds = result.db_time.total_seconds()
        return cls(
            worker_id=result.worker_id,
            start=result.start,
            end=end,
            duration_seconds=duration,
            db_time_seconds=db_seconds,
            work_count=result.work_count,
            error_count=result.error_count,
            work_share=ratio(result.work_count, total_dispatched),
            work_per_db_second=ratio(result.work_count, db_seconds),
            error_share=ratio(result.error_count, result.work_count),
            errors_per_second=ratio(result.error_count, duration),
        )

    def render_text(self) -> str:
        start = self.start.astimezone().strftime(TIMESTAMP_FORMAT)
        end = self.end.astimezone().strftime(TIMESTAMP_FORMAT)
        return "\n".join(
            [
                f"---- Worker #{self.worker_id} ----",
                f"  Started at {start} , Ended at {end}, "
                f"Worker time {format_duration(self.duration_seconds)}, "
                f"DB time {format_duration(self.db_time_seconds)}",
                f"  Total work: {self.work_count}, "
                f"Percentage work: {self.work_share * 100:f}, "
                f"Average work over DB time: {self.work_per_db_second:f}",
                f"  Total errors: {self.error_count} , "
                f"Percentage errors: {self.error_share * 100:f}, "
                f"Average errors per second: {self.errors_per_second:f}",
            ]
        )


class RunReport(BaseModel):
    """
    Aggregate report for a run.

    Workers appear in the order their results were collected.
    """

    total_dispatched: int = Field(..., description="Statements handed to workers")
    cancelled: bool = Field(False, description="Run was interrupted")
    started_at: datetime = Field(..., description="Dispatcher start time")
    finished_at: datetime = Field(..., description="All workers terminated")
    workers: List[WorkerReport] = Field(default_factory=list)
    read_errors: int = Field(0, description="Input lines that could not be read")
    stopped_reason: Optional[str] = Field(None, description="Why input stopped early")

    @classmethod
    def build(
        cls,
        *,
        total_dispatched: int,
        results: List[WorkerResult],
        started_at: datetime,
        finished_at: datetime,
        cancelled: bool = False,
        read_errors: int = 0,
        stopped_reason: Optional[str] = None,
    ) -> RunReport:
        return cls(
            total_dispatched=total_dispatched,
            cancelled=cancelled,
            started_at=started_at,
            finished_at=finished_at,
            workers=[WorkerReport.from_result(r, total_dispatched) for r in results],
            read_errors=read_errors,
            stopped_reason=stopped_reason,
        )

    @property
    def total_work(self) -> int:
        return sum(w.work_count for w in self.workers)

    @property
    def total_errors(self) -> int:
        return sum(w.error_count for w in self.workers)

    def render_text(self) -> str:
        lines = ["Slammer Status:", f"Queries to run: {self.total_dispatched}"]
        for worker in self.workers:
            lines.append(worker.render_text())
        summary = (
            f"Total: dispatched {self.total_dispatched}, "
            f"attempted {self.total_work}, errors {self.total_errors}, "
            f"elapsed {format_duration((self.finished_at - self.started_at).total_seconds())}"
        )
        if self.cancelled:
            summary += " (cancelled)"
        if self.stopped_reason:
            summary += f" ({self.stopped_reason})"
        lines.append(summary)
        return "\n".join(lines)

    def render_json(self) -> str:
        return self.model_dump_json(indent=2)
