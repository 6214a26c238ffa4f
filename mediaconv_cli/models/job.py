"""
Data structures describing a tracked conversion job.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class JobStatus(str, Enum):
    """Lifecycle states of a conversion job."""

    PREPARING = "preparing"
    DOWNLOADING = "downloading"
    CONVERTING = "converting"
    COMPLETE = "complete"  # Terminal
    ERROR = "error"  # Terminal

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETE, JobStatus.ERROR)


@dataclass(frozen=True)
class Job:
    """
    An immutable snapshot of one conversion job.

    Every change produces a new snapshot; the registry swaps the old one out.
    """

    id: str
    source_url: str
    title: str = ""
    quality: str = "best"
    progress: int = 0
    status: JobStatus = JobStatus.PREPARING
    error_detail: Optional[str] = None
    created_at: float = field(default_factory=time.monotonic, compare=False)

    def __post_init__(self):
        if not self.title:
            object.__setattr__(self, "title", self.source_url)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class Notification:
    """A transient, user-facing message raised by the orchestrator."""

    title: str
    description: str
    level: str = "info"  # info | success | warning | error
    job_id: Optional[str] = None
