"""
Dataclass for tracking conversion session statistics.
"""

import time
from dataclasses import dataclass, field


@dataclass
class SessionStats:
    """Tracks counters for a conversion session."""

    jobs_submitted: int = 0
    jobs_completed: int = 0
    jobs_failed: int = 0
    previews_fetched: int = 0
    files_saved: int = 0
    bytes_saved: int = 0
    started_at: float = field(default_factory=time.monotonic, repr=False)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def record_outcome(self, success: bool) -> None:
        if success:
            self.jobs_completed += 1
        else:
            self.jobs_failed += 1

    def record_saved_file(self, size: int) -> None:
        self.files_saved += 1
        self.bytes_saved += size
