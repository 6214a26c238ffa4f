"""
Timer-driven artificial progress for a job whose backend has not reported yet.
"""

import asyncio
import logging
from typing import Optional

from mediaconv_cli.core.registry import JobRegistry, MergeProgress

log = logging.getLogger(__name__)


class ProgressSimulator:
    """
    Emits a steadily increasing progress value for one job, capped below 100.

    The simulator never claims completion; only the orchestrator does, once the
    network call has settled. After `stop()` no further tick reaches the
    registry, even if the ticker task has not yet observed its cancellation.
    """

    def __init__(
        self,
        job_id: str,
        registry: JobRegistry,
        interval: float = 0.1,
        step: int = 1,
        cap: int = 95,
    ):
        """
        Args:
            job_id: The job whose record receives the ticks.
            registry: The store the ticks are dispatched to.
            interval: Seconds between ticks.
            step: Progress units added per tick.
            cap: The highest value the simulator will ever emit (must be < 100).
        """
        if cap >= 100:
            raise ValueError("Simulated progress must stay below 100.")
        self.job_id = job_id
        self.registry = registry
        self.interval = interval
        self.step = step
        self.cap = cap

        self._value = 0
        self._stopped = False
        self._task: Optional[asyncio.Task] = None

    @property
    def value(self) -> int:
        """The last artificial value emitted."""
        return self._value

    @property
    def running(self) -> bool:
        return self._task is not None and not self._stopped

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> None:
        """Schedules the ticker on the running event loop."""
        if self._stopped:
            raise RuntimeError(f"Simulator for job {self.job_id} was already stopped.")
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._run(), name=f"progress-simulator-{self.job_id}"
            )

    def tick(self) -> bool:
        """
        Advances the artificial value by one step and pushes it to the registry.

        Returns:
            False once the simulator is stopped or has reached its cap.
        """
        if self._stopped or self._value >= self.cap:
            return False
        self._value = min(self.cap, self._value + self.step)
        self.registry.dispatch(MergeProgress(self.job_id, self._value))
        return self._value < self.cap

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if not self.tick():
                break
        if not self._stopped:
            log.debug(f"Simulator for job {self.job_id} holding at {self._value}%")

    def stop(self) -> None:
        """Stops ticking. Safe to call more than once."""
        if self._stopped:
            return
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        log.debug(f"Simulator for job {self.job_id} stopped at {self._value}%")
