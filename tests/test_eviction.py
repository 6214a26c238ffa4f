import asyncio

from mediaconv_cli.core.eviction import EvictionScheduler
from mediaconv_cli.core.registry import JobRegistry
from mediaconv_cli.models.job import Job


def _registry(*job_ids: str) -> JobRegistry:
    registry = JobRegistry()
    for job_id in job_ids:
        registry.create(Job(id=job_id, source_url=f"https://youtu.be/{job_id}"))
    return registry


def test_removes_only_the_scheduled_job_after_the_delay() -> None:
    async def scenario() -> None:
        registry = _registry("a", "b")
        scheduler = EvictionScheduler(registry)
        scheduler.schedule_removal("a", 0.1)

        await asyncio.sleep(0.03)
        assert "a" in registry
        assert scheduler.pending == 1

        await scheduler.wait_idle()
        assert "a" not in registry
        assert "b" in registry
        assert scheduler.pending == 0

    asyncio.run(scenario())


def test_removing_an_absent_job_is_a_noop() -> None:
    async def scenario() -> None:
        registry = _registry("a")
        scheduler = EvictionScheduler(registry)
        scheduler.schedule_removal("a", 0.01)
        scheduler.schedule_removal("a", 0.02)
        scheduler.schedule_removal("ghost", 0.01)

        await scheduler.wait_idle()
        assert len(registry) == 0

    asyncio.run(scenario())


def test_cancel_all_leaves_jobs_in_place() -> None:
    async def scenario() -> None:
        registry = _registry("a")
        scheduler = EvictionScheduler(registry)
        scheduler.schedule_removal("a", 10)

        scheduler.cancel_all()
        await scheduler.wait_idle()

        assert "a" in registry
        assert scheduler.pending == 0

    asyncio.run(scenario())
