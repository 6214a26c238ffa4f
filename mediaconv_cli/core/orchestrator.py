"""
Coordinates the lifecycle of conversion jobs: registration, progress
simulation, the backend request, finalization, file saving, and eviction.
"""

import asyncio
import logging
import uuid
from typing import Callable, Dict, Optional, Set

from mediaconv_cli.api.client import ConverterAPIClient
from mediaconv_cli.core.eviction import EvictionScheduler
from mediaconv_cli.core.registry import CompleteJob, FailJob, JobRegistry
from mediaconv_cli.core.simulator import ProgressSimulator
from mediaconv_cli.core.transfer import TransferProgressAdapter
from mediaconv_cli.exceptions import TransferError, ValidationError
from mediaconv_cli.media.saver import FileSaver
from mediaconv_cli.models.config import QUALITY_TIERS, ClientConfig
from mediaconv_cli.models.job import Job, Notification
from mediaconv_cli.models.responses import DownloadResponse, VideoInfo
from mediaconv_cli.models.stats import SessionStats
from mediaconv_cli.utils.url import is_supported_video_url

log = logging.getLogger(__name__)

GENERIC_FAILURE = "Conversion failed"
TIMEOUT_FAILURE = "Conversion timed out"
UNEXPECTED_FAILURE = "An error occurred during conversion"
CANCELLED_FAILURE = "Conversion cancelled"
PREVIEW_FAILURE = "Could not fetch video information"


def extract_error_detail(error: BaseException) -> str:
    """
    Picks the user-facing message for a failed conversion, preferring the
    message supplied by the server.
    """
    if isinstance(error, TransferError):
        if error.detail:
            return error.detail
        return TIMEOUT_FAILURE if error.timed_out else GENERIC_FAILURE
    return UNEXPECTED_FAILURE


class DownloadOrchestrator:
    """
    Drives each submitted job through preparing/downloading/converting to a
    terminal complete or error state.

    Every job gets its own simulator and transfer adapter, and all of them
    write into one shared `JobRegistry`.
    """

    def __init__(
        self,
        config: ClientConfig,
        api_client: ConverterAPIClient,
        registry: Optional[JobRegistry] = None,
        saver: Optional[FileSaver] = None,
        stats: Optional[SessionStats] = None,
        on_notify: Optional[Callable[[Notification], None]] = None,
    ):
        self.config = config
        self.api_client = api_client
        self.registry = registry or JobRegistry()
        self.saver = saver
        self.stats = stats or SessionStats()
        self.on_notify = on_notify
        self.evictions = EvictionScheduler(self.registry)

        self._simulators: Dict[str, ProgressSimulator] = {}
        self._save_tasks: Set[asyncio.Task] = set()
        self._in_flight = 0

        # Input and preview state
        self.current_url = ""
        self.video_info: Optional[VideoInfo] = None
        self.preview_loading = False
        self.preview_error: Optional[str] = None
        self.last_error: Optional[str] = None
        self._preview_url: Optional[str] = None
        self._preview_generation = 0

    @property
    def is_loading(self) -> bool:
        """True while at least one conversion request is in flight."""
        return self._in_flight > 0

    def _notify(self, notification: Notification) -> None:
        log.debug(f"Notification [{notification.level}]: {notification.description}")
        if self.on_notify:
            self.on_notify(notification)

    def _stop_simulator(self, job_id: str) -> None:
        simulator = self._simulators.pop(job_id, None)
        if simulator:
            simulator.stop()

    async def submit(
        self,
        source_url: str,
        quality: Optional[str] = None,
        known_title: Optional[str] = None,
    ) -> Job:
        """
        Submits one conversion and tracks it until it settles.

        Returns:
            The job's terminal snapshot.

        Raises:
            ValidationError: If the URL is blank or the quality is unknown. No
            job is created in that case.
        """
        if not source_url or not source_url.strip():
            raise ValidationError("Please enter a valid video URL.")
        source_url = source_url.strip()
        quality = (quality or self.config.quality).strip().lower()
        if quality not in QUALITY_TIERS:
            raise ValidationError(
                f"Unknown quality '{quality}'. Choose one of {', '.join(QUALITY_TIERS)}."
            )

        title = known_title
        if not title and self.video_info and self._preview_url == source_url:
            title = self.video_info.title

        job = self.registry.create(
            Job(
                id=uuid.uuid4().hex,
                source_url=source_url,
                title=title or source_url,
                quality=quality,
            )
        )
        self.stats.jobs_submitted += 1
        log.debug(f"Job {job.id} created for {source_url} ({quality})")

        simulator = ProgressSimulator(
            job.id,
            self.registry,
            interval=self.config.tick_interval,
            step=self.config.tick_step,
            cap=self.config.simulated_cap,
        )
        self._simulators[job.id] = simulator
        adapter = TransferProgressAdapter(job.id, self.registry, simulator)

        self._in_flight += 1
        self.last_error = None
        try:
            simulator.start()
            response = await self.api_client.request_conversion(
                source_url, quality, on_progress=adapter
            )
        except asyncio.CancelledError:
            self._stop_simulator(job.id)
            self.registry.dispatch(FailJob(job.id, CANCELLED_FAILURE))
            self.stats.record_outcome(success=False)
            self.evictions.schedule_removal(job.id, self.config.error_eviction_delay)
            raise
        except Exception as e:
            self._stop_simulator(job.id)
            self._finalize_failure(job.id, e)
        else:
            self._stop_simulator(job.id)
            self._finalize_success(job.id, response)
        finally:
            self._stop_simulator(job.id)
            self._in_flight -= 1

        return self.registry.get(job.id) or job

    def _finalize_success(self, job_id: str, response: DownloadResponse) -> None:
        self.registry.dispatch(CompleteJob(job_id))
        self.stats.record_outcome(success=True)
        log.debug(f"Job {job_id} complete: {response.message or 'no message'}")

        link = self.api_client.build_download_link(response.download_url)
        if self.saver:
            task = asyncio.get_running_loop().create_task(self._save(job_id, link))
            self._save_tasks.add(task)
            task.add_done_callback(self._save_tasks.discard)

        self.evictions.schedule_removal(job_id, self.config.success_eviction_delay)

        # Reset the input for the next submission
        self.current_url = ""
        self.video_info = None
        self._preview_url = None
        self._preview_generation += 1

        self._notify(
            Notification(
                "Success!", "Your file is being downloaded.", "success", job_id
            )
        )

    def _finalize_failure(self, job_id: str, error: BaseException) -> None:
        detail = extract_error_detail(error)
        self.registry.dispatch(FailJob(job_id, detail))
        self.stats.record_outcome(success=False)
        if isinstance(error, TransferError):
            log.warning(f"[yellow]Job {job_id} failed: {error}[/yellow]")
        else:
            log.error(f"[red]Job {job_id} failed unexpectedly: {error}[/red]", exc_info=True)

        self.evictions.schedule_removal(job_id, self.config.error_eviction_delay)
        self.last_error = detail
        self._notify(Notification("Error", detail, "error", job_id))

    async def _save(self, job_id: str, link: str) -> None:
        try:
            path = await self.saver.save(link)
            log.info(f"[green]✓ Saved[/green] [dim]{path}[/dim]")
        except Exception as e:
            log.warning(f"[yellow]Could not save file for job {job_id}: {e}[/yellow]")
            self._notify(Notification("Save failed", str(e), "warning", job_id))

    async def preview(self, candidate_url: str) -> Optional[VideoInfo]:
        """
        Looks up preview metadata for the current input.

        Each call supersedes earlier ones: a response that arrives after a newer
        call was made is discarded. Failures only clear the preview.
        """
        self.current_url = candidate_url
        self._preview_generation += 1
        generation = self._preview_generation

        if not is_supported_video_url(candidate_url):
            self.video_info = None
            self._preview_url = None
            self.preview_loading = False
            return None

        url = candidate_url.strip()
        self.preview_loading = True
        self.video_info = None
        try:
            info = await self.api_client.fetch_video_info(url)
        except Exception as e:
            if generation == self._preview_generation:
                log.debug(f"Preview lookup for {url} failed: {e}")
                self.video_info = None
                self._preview_url = None
                self.preview_error = PREVIEW_FAILURE
                self.preview_loading = False
            return None

        if generation != self._preview_generation:
            log.debug(f"Discarding stale preview for {url}")
            return None

        self.preview_loading = False
        self.video_info = info
        self._preview_url = url
        self.preview_error = None
        self.stats.previews_fetched += 1
        return info

    async def wait_for_saves(self) -> None:
        while self._save_tasks:
            await asyncio.gather(*list(self._save_tasks))

    async def aclose(self, cancel_evictions: bool = False) -> None:
        """
        Tears the session down: stops simulators, waits for file saves, then
        waits for pending evictions (or cancels them).
        """
        for job_id in list(self._simulators):
            self._stop_simulator(job_id)
        await self.wait_for_saves()
        if cancel_evictions:
            self.evictions.cancel_all()
        await self.evictions.wait_idle()
