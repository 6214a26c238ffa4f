"""
Core download-tracking engine.

The `DownloadOrchestrator` coordinates each submitted job, combining the
artificial progress of a `ProgressSimulator` with real transfer progress from a
`TransferProgressAdapter` inside one `JobRegistry`, and hands finished jobs to
the `EvictionScheduler`.
"""

from .eviction import EvictionScheduler
from .lifecycle import classify_progress
from .orchestrator import DownloadOrchestrator
from .registry import JobRegistry, reduce_jobs
from .simulator import ProgressSimulator
from .transfer import TransferProgressAdapter

__all__ = [
    "DownloadOrchestrator",
    "EvictionScheduler",
    "JobRegistry",
    "ProgressSimulator",
    "TransferProgressAdapter",
    "classify_progress",
    "reduce_jobs",
]
