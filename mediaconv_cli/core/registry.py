"""
The single source of truth for all active jobs.

State changes are expressed as small action objects and applied by a pure
reducer. The `JobRegistry` store always reduces against its latest state, so
producers that fire independently (simulator ticks, transfer callbacks,
finalization, eviction) never overwrite each other's updates with a stale
snapshot.
"""

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from mediaconv_cli.core.lifecycle import classify_progress
from mediaconv_cli.models.job import Job, JobStatus

log = logging.getLogger(__name__)

# Merged progress stays below completion until the request has settled
PROGRESS_CAP = 99

# Fields that may be changed through UpdateJob
DESCRIPTIVE_FIELDS = frozenset({"title", "quality"})


@dataclass(frozen=True)
class CreateJob:
    job: Job


@dataclass(frozen=True)
class UpdateJob:
    job_id: str
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MergeProgress:
    job_id: str
    progress: float


@dataclass(frozen=True)
class CompleteJob:
    job_id: str


@dataclass(frozen=True)
class FailJob:
    job_id: str
    detail: str


@dataclass(frozen=True)
class RemoveJob:
    job_id: str


Action = Union[CreateJob, UpdateJob, MergeProgress, CompleteJob, FailJob, RemoveJob]
JobState = Mapping[str, Job]
Listener = Callable[[JobState, Action], None]


def reduce_jobs(state: JobState, action: Action) -> JobState:
    """
    Applies one action to a job map and returns the resulting map.

    The input is never mutated. When an action has no effect (unknown id,
    terminal job, regressing progress) the input map itself is returned, which
    lets callers detect no-ops by identity.

    Raises:
        ValueError: On a duplicate job id or an attempt to change a
        non-descriptive field through UpdateJob.
    """
    if isinstance(action, CreateJob):
        if action.job.id in state:
            raise ValueError(f"Job id '{action.job.id}' is already registered.")
        return {**state, action.job.id: action.job}

    if isinstance(action, RemoveJob):
        if action.job_id not in state:
            return state
        return {k: v for k, v in state.items() if k != action.job_id}

    job = state.get(action.job_id)
    if job is None or job.is_terminal:
        return state

    if isinstance(action, UpdateJob):
        invalid = set(action.changes) - DESCRIPTIVE_FIELDS
        if invalid:
            raise ValueError(
                f"Cannot update {', '.join(sorted(invalid))} directly; "
                "use the progress and finalization actions."
            )
        if not action.changes:
            return state
        updated = replace(job, **action.changes)
    elif isinstance(action, MergeProgress):
        value = int(min(PROGRESS_CAP, max(0, action.progress)))
        if value <= job.progress:
            return state
        updated = replace(job, progress=value, status=classify_progress(value))
    elif isinstance(action, CompleteJob):
        updated = replace(job, progress=100, status=JobStatus.COMPLETE)
    elif isinstance(action, FailJob):
        updated = replace(job, status=JobStatus.ERROR, error_detail=action.detail)
    else:
        raise TypeError(f"Unknown action: {action!r}")

    return {**state, job.id: updated}


class JobRegistry:
    """
    Owns the job map for a session and notifies listeners of every change.
    """

    def __init__(self, initial: Optional[JobState] = None):
        self._state: JobState = dict(initial or {})
        self._listeners: List[Listener] = []

    @property
    def state(self) -> JobState:
        """A read-only view of the latest committed job map."""
        return MappingProxyType(self._state)

    def dispatch(self, action: Action) -> bool:
        """
        Reduces the current state with `action`.

        Returns:
            True if the state changed, False if the action was a no-op.
        """
        new_state = reduce_jobs(self._state, action)
        if new_state is self._state:
            return False
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(self.state, action)
            except Exception:
                log.exception(f"Registry listener failed while handling {action!r}")
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a listener and returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Convenience API
    def create(self, job: Job) -> Job:
        self.dispatch(CreateJob(job))
        return job

    def update(self, job_id: str, **changes: Any) -> bool:
        """
        Applies a partial update to a job. A missing id is a no-op.

        `progress` is merged with the running-maximum rule, `status` may only
        be set to a terminal value (ERROR takes `error_detail`), and the
        remaining keys must be descriptive fields.
        """
        progress = changes.pop("progress", None)
        status = changes.pop("status", None)
        error_detail = changes.pop("error_detail", None)

        if status is not None and not JobStatus(status).is_terminal:
            raise ValueError(
                "Non-terminal status is derived from progress and cannot be set."
            )

        changed = False
        if changes:
            changed |= self.dispatch(UpdateJob(job_id, dict(changes)))
        if progress is not None:
            changed |= self.dispatch(MergeProgress(job_id, progress))
        if status is not None:
            if JobStatus(status) is JobStatus.COMPLETE:
                changed |= self.dispatch(CompleteJob(job_id))
            else:
                changed |= self.dispatch(FailJob(job_id, error_detail or ""))
        return changed

    def remove(self, job_id: str) -> bool:
        return self.dispatch(RemoveJob(job_id))

    def get(self, job_id: str) -> Optional[Job]:
        return self._state.get(job_id)

    def get_all(self) -> List[Job]:
        """Returns all jobs in submission order."""
        return list(self._state.values())

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._state

    def __len__(self) -> int:
        return len(self._state)

    def snapshot(self) -> Dict[str, Job]:
        return dict(self._state)
