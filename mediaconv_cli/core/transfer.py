"""
Converts byte-level transfer samples from the network layer into job progress.
"""

import logging
from typing import Optional

from mediaconv_cli.core.registry import PROGRESS_CAP, JobRegistry, MergeProgress
from mediaconv_cli.core.simulator import ProgressSimulator

log = logging.getLogger(__name__)

# Used as the denominator when the server does not announce a length
UNKNOWN_TOTAL = 100


def transfer_percentage(bytes_loaded: int, bytes_total: Optional[int]) -> float:
    """Computes the capped percentage for a transfer sample."""
    total = bytes_total or UNKNOWN_TOTAL
    return min(float(PROGRESS_CAP), bytes_loaded / total * 100)


class TransferProgressAdapter:
    """
    Forwards real transfer progress for one job, but only when it overtakes the
    artificial value the simulator has already shown.

    Instances are callables so they can be handed directly to the API client
    as its progress callback.
    """

    def __init__(
        self, job_id: str, registry: JobRegistry, simulator: ProgressSimulator
    ):
        self.job_id = job_id
        self.registry = registry
        self.simulator = simulator
        self.last_forwarded: Optional[int] = None

    def __call__(self, bytes_loaded: int, bytes_total: Optional[int]) -> Optional[int]:
        """
        Handles one sample.

        Returns:
            The progress value forwarded to the registry, or None if the sample
            did not exceed the artificial progress.
        """
        actual = transfer_percentage(bytes_loaded, bytes_total)
        if actual <= self.simulator.value:
            return None
        value = int(actual)
        self.registry.dispatch(MergeProgress(self.job_id, value))
        self.last_forwarded = value
        log.debug(
            f"Job {self.job_id}: transfer at {actual:.1f}% "
            f"({bytes_loaded}/{bytes_total or '?'} bytes)"
        )
        return value
