import asyncio
import io

from rich.console import Console

from mediaconv_cli.cli.progress_manager import ProgressManager
from mediaconv_cli.core.registry import CompleteJob, FailJob, JobRegistry, MergeProgress
from mediaconv_cli.models.job import Job, Notification


def _manager() -> tuple[ProgressManager, io.StringIO]:
    output = io.StringIO()
    return ProgressManager(Console(file=output, width=120)), output


def test_display_rows_follow_registry_jobs() -> None:
    registry = JobRegistry()
    manager, _ = _manager()
    manager.attach(registry)
    assert manager.progress.tasks == []

    registry.create(Job(id="a", source_url="https://youtu.be/a", title="First clip"))
    (task,) = manager.progress.tasks
    assert task.completed == 0
    assert "First clip" in task.description
    assert "preparing" in task.description

    registry.dispatch(MergeProgress("a", 42))
    assert manager.progress.tasks[0].completed == 42
    assert "downloading" in manager.progress.tasks[0].description

    registry.dispatch(CompleteJob("a"))
    assert manager.progress.tasks[0].completed == 100
    assert "complete" in manager.progress.tasks[0].description

    registry.remove("a")
    assert manager.progress.tasks == []


def test_failed_job_shows_detail_and_attach_picks_up_existing_jobs() -> None:
    registry = JobRegistry()
    registry.create(Job(id="a", source_url="https://youtu.be/a"))
    registry.create(Job(id="b", source_url="https://youtu.be/b"))
    manager, _ = _manager()

    manager.attach(registry)
    assert len(manager.progress.tasks) == 2

    registry.dispatch(FailJob("b", "Video too long"))
    assert "Video too long" in manager.progress.tasks[1].description

    manager.detach()
    registry.remove("a")
    assert len(manager.progress.tasks) == 2


def test_live_display_starts_and_stops_with_context() -> None:
    async def scenario() -> str:
        registry = JobRegistry()
        manager, output = _manager()
        async with manager:
            manager.attach(registry)
            registry.create(Job(id="a", source_url="https://youtu.be/a"))
            manager.print_notification(
                Notification("Success!", "Your file is being downloaded.", "success")
            )
        return output.getvalue()

    rendered = asyncio.run(scenario())
    assert "Success!" in rendered
    assert "Your file is being downloaded." in rendered
