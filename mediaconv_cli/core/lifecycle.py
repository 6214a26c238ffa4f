"""
Maps a job's numeric progress onto its human-readable lifecycle state.
"""

from mediaconv_cli.models.job import JobStatus

DOWNLOADING_THRESHOLD = 30
CONVERTING_THRESHOLD = 80
COMPLETE_PROGRESS = 100


def classify_progress(progress: float) -> JobStatus:
    """
    Derives the non-terminal status for a progress value in [0, 100].

    100 maps to COMPLETE for completeness, but the registry caps merged
    progress at 99, so only an explicit completion ever reaches it.
    ERROR is never derived from progress.
    """
    if progress < 0 or progress > COMPLETE_PROGRESS:
        raise ValueError(f"Progress must be between 0 and 100, got {progress}.")
    if progress < DOWNLOADING_THRESHOLD:
        return JobStatus.PREPARING
    if progress < CONVERTING_THRESHOLD:
        return JobStatus.DOWNLOADING
    if progress < COMPLETE_PROGRESS:
        return JobStatus.CONVERTING
    return JobStatus.COMPLETE


def is_terminal(status: JobStatus) -> bool:
    return status.is_terminal
