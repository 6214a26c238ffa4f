"""
Manages a Rich Live display mirroring the jobs held in a JobRegistry.
"""

import asyncio
import logging
from typing import Callable, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text

from mediaconv_cli.core.registry import Action, JobRegistry, JobState
from mediaconv_cli.models.job import Job, JobStatus, Notification
from mediaconv_cli.utils.formatting import shorten

log = logging.getLogger("mediaconv_cli")

STATUS_STYLES = {
    JobStatus.PREPARING: "yellow",
    JobStatus.DOWNLOADING: "cyan",
    JobStatus.CONVERTING: "magenta",
    JobStatus.COMPLETE: "green",
    JobStatus.ERROR: "red",
}

NOTIFICATION_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


class ProgressManager:
    """
    Renders one progress row per registry job, added when the job is created,
    updated on every change, and removed when the job is evicted.
    """

    def __init__(self, console: Console):
        self.console = console

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self._live: Optional[Live] = None
        self._tasks: dict[str, TaskID] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None

    def attach(self, registry: JobRegistry) -> None:
        """Subscribes to a registry and renders its current jobs."""
        self.detach()
        self._unsubscribe = registry.subscribe(self._on_change)
        self._sync(registry.state)

    def detach(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    @staticmethod
    def _describe(job: Job) -> str:
        style = STATUS_STYLES.get(job.status, "white")
        description = f"{shorten(job.title, 40):<40} [{style}]{job.status.value:<11}[/{style}]"
        if job.error_detail:
            description += f" [red]{shorten(job.error_detail, 40)}[/red]"
        return description

    def _on_change(self, state: JobState, action: Action) -> None:
        self._sync(state)

    def _sync(self, state: JobState) -> None:
        for job_id in [jid for jid in self._tasks if jid not in state]:
            self.progress.remove_task(self._tasks.pop(job_id))

        for job in state.values():
            task_id = self._tasks.get(job.id)
            if task_id is None:
                self._tasks[job.id] = self.progress.add_task(
                    self._describe(job), total=100, completed=job.progress
                )
            else:
                self.progress.update(
                    task_id, description=self._describe(job), completed=job.progress
                )

    def _renderable(self) -> Group:
        if not self._tasks:
            body = Text("No active conversions.", style="dim italic", justify="center")
        else:
            body = self.progress
        return Group(
            Panel(
                body,
                title=f"[bold]🎵 Conversions ({len(self._tasks)})[/bold]",
                border_style="cyan",
            )
        )

    def print_notification(self, notification: Notification) -> None:
        style = NOTIFICATION_STYLES.get(notification.level, "")
        message = f"[bold {style}]{notification.title}[/bold {style}] {notification.description}"
        self.console.print(message)

    async def __aenter__(self):
        self._live = Live(
            get_renderable=self._renderable,
            console=self.console,
            refresh_per_second=12,
            vertical_overflow="visible",
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.detach()
        if self._live:
            await asyncio.sleep(0.2)
            self._live.stop()
