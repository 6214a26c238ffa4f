"""
Delayed removal of finished jobs from the registry.
"""

import asyncio
import logging
from typing import Set

from mediaconv_cli.core.registry import JobRegistry, RemoveJob

log = logging.getLogger(__name__)


class EvictionScheduler:
    """
    Removes a job's record after a grace period.

    Individual removals cannot be cancelled; each timer only ever removes the
    id it was scheduled for, and removing an id that is already gone is a
    no-op. `cancel_all()` exists for session teardown.
    """

    def __init__(self, registry: JobRegistry):
        self.registry = registry
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule_removal(self, job_id: str, delay: float) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self._remove_later(job_id, delay), name=f"evict-{job_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _remove_later(self, job_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        if self.registry.dispatch(RemoveJob(job_id)):
            log.debug(f"Evicted job {job_id} after {delay:.1f}s")

    async def wait_idle(self) -> None:
        """Waits until every scheduled removal has run."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
