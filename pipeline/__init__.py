"""Fill pipeline, executors, scheduler loop and runtime wiring."""

from .executors import DirectExecutor, JobExecutor, WorkItemExecutor
from .reporting import print_gap_report, print_run_summary
from .runner import FillPipeline, ItemResult, progress_line
from .runtime import EXECUTORS, PregenRuntime, build_analysis, build_runtime
from .scheduler import SchedulerLoop, install_signal_handlers

__all__ = [
    "DirectExecutor",
    "JobExecutor",
    "WorkItemExecutor",
    "print_gap_report",
    "print_run_summary",
    "FillPipeline",
    "ItemResult",
    "progress_line",
    "EXECUTORS",
    "PregenRuntime",
    "build_analysis",
    "build_runtime",
    "SchedulerLoop",
    "install_signal_handlers",
]
