"""
Data Models Layer.

This package contains the data structures used throughout the application:
the Pydantic configuration and backend payload models, the job snapshot and
its lifecycle states, and session statistics.
"""

from .config import ClientConfig
from .job import Job, JobStatus, Notification
from .responses import DownloadResponse, VideoInfo
from .stats import SessionStats

__all__ = [
    "ClientConfig",
    "DownloadResponse",
    "Job",
    "JobStatus",
    "Notification",
    "SessionStats",
    "VideoInfo",
]
