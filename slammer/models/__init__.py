"""Data models for runs, worker results and reports."""

from .report import RunReport, WorkerReport, format_duration, ratio
from .run_config import RunConfig, build_run_config
from .worker_result import WorkerResult

__all__ = [
    "RunConfig",
    "build_run_config",
    "WorkerResult",
    "WorkerReport",
    "RunReport",
    "format_duration",
    "ratio",
]
