"""Render job lifecycle -- submit, track, and report one render request.

A job walks forward through a fixed state machine:

    processing (25%) ──► rendering (50%) ──┬──► completed (100%)
                                           └──► error (0%)

submit() does all synchronous work up front: validation and timeline
assembly either succeed or raise before any job exists. It then records
the job, hands the composition to the renderer on an executor, and
returns the job id without waiting. The renderer's outcome arrives through
a done-callback on the executor future, which moves the job into its
terminal state. Render failures never propagate into submit(); they are
recorded on the job as error state.

Status reads are snapshot copies taken under the store lock, so a poller
only ever sees states in forward order (it may skip states if it polls
slowly). There is no cancellation and no automatic retry: a failed job
stays failed and the caller submits a fresh one.
"""

import dataclasses
import logging
import math
import threading
import time
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from .errors import JobStateError, NotFoundError
from .manifest import SectionDescriptor, validate_sections
from .templates import list_section_types
from .timeline import Composition, assemble_timeline


logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PROCESSING = "processing"
    RENDERING = "rendering"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)


# Allowed forward moves. Terminal states have no outgoing transitions.
TRANSITIONS = {
    JobStatus.PROCESSING: {JobStatus.RENDERING},
    JobStatus.RENDERING: {JobStatus.COMPLETED, JobStatus.ERROR},
    JobStatus.COMPLETED: set(),
    JobStatus.ERROR: set(),
}

PROGRESS = {
    JobStatus.PROCESSING: 25,
    JobStatus.RENDERING: 50,
    JobStatus.COMPLETED: 100,
    JobStatus.ERROR: 0,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RenderJob:
    id: str
    status: JobStatus = JobStatus.PROCESSING
    progress: int = PROGRESS[JobStatus.PROCESSING]
    artifact_location: str | None = None
    duration_seconds: int | None = None
    error_detail: str | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    history: tuple[JobStatus, ...] = (JobStatus.PROCESSING,)

    def to_dict(self) -> dict:
        """Status payload for transports: only the fields this state sets."""
        payload = {"jobId": self.id, "status": self.status.value, "progress": self.progress}
        if self.status is JobStatus.COMPLETED:
            payload["videoUrl"] = self.artifact_location
            payload["duration"] = self.duration_seconds
        elif self.status is JobStatus.ERROR:
            payload["error"] = self.error_detail
        return payload


# ── Store ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RetentionPolicy:
    """How long finished jobs stay queryable.

    max_jobs: keep at most this many jobs; the oldest terminal jobs go
        first. Jobs still in flight are never evicted, so the table can
        exceed max_jobs while many renders are running.
    ttl_seconds: drop terminal jobs this long after they finished. Checked
        on every create and get, so an expired job reads as not found.

    Both None (the default) keeps every job for the life of the process.
    """

    max_jobs: int | None = None
    ttl_seconds: float | None = None


class JobStore:
    """Thread-safe in-memory job table keyed by job id.

    Only the state machine writes to it; readers get copies.
    """

    def __init__(self, policy: RetentionPolicy | None = None):
        self.policy = policy or RetentionPolicy()
        self._jobs: dict[str, RenderJob] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def create(self, job_id: str) -> RenderJob:
        """Insert a new job in the processing state.

        Raises:
            JobStateError: the id is already in use.
        """
        with self._lock:
            if job_id in self._jobs:
                raise JobStateError(f"Job {job_id} already exists")
            self._evict()
            job = RenderJob(id=job_id)
            self._jobs[job_id] = job
            return dataclasses.replace(job)

    def get(self, job_id: str) -> RenderJob:
        """Snapshot of a job.

        Raises:
            NotFoundError: unknown, evicted or expired id.
        """
        with self._lock:
            self._expire()
            return dataclasses.replace(self._lookup(job_id))

    def transition(self, job_id: str, status: JobStatus, **fields) -> RenderJob:
        """Move a job to a new status and set the fields that go with it.

        Raises:
            NotFoundError: unknown id.
            JobStateError: the move is not a forward transition.
        """
        with self._lock:
            job = self._lookup(job_id)
            if status not in TRANSITIONS[job.status]:
                raise JobStateError(
                    f"Job {job_id}: illegal transition {job.status.value} -> {status.value}"
                )
            job.status = status
            job.progress = PROGRESS[status]
            job.history = job.history + (status,)
            job.updated_at = _now()
            for name, value in fields.items():
                setattr(job, name, value)
            return dataclasses.replace(job)

    def _lookup(self, job_id: str) -> RenderJob:
        try:
            return self._jobs[job_id]
        except KeyError:
            raise NotFoundError(f"Job not found: {job_id}") from None

    def _expire(self) -> None:
        """Drop terminal jobs older than the TTL. Caller holds the lock."""
        ttl = self.policy.ttl_seconds
        if ttl is None:
            return
        now = _now()
        expired = [
            job_id for job_id, job in self._jobs.items()
            if job.status.is_terminal
            and (now - job.updated_at).total_seconds() >= ttl
        ]
        for job_id in expired:
            del self._jobs[job_id]

    def _evict(self) -> None:
        """Apply the retention policy before an insert. Caller holds the lock."""
        policy = self.policy
        self._expire()

        if policy.max_jobs is not None:
            # Make room for the job about to be inserted.
            excess = len(self._jobs) + 1 - policy.max_jobs
            if excess > 0:
                finished = sorted(
                    (job for job in self._jobs.values() if job.status.is_terminal),
                    key=lambda job: job.updated_at,
                )
                for job in finished[:excess]:
                    del self._jobs[job.id]


# ── State machine ─────────────────────────────────────────────────


class RenderJobManager:
    """Owns the lifecycle of every render job.

    Args:
        renderer: Object with render(composition, output_path); raises on
            failure.
        output_dir: Directory for artifacts, one <job_id>.mp4 per job.
        store: Job table. Defaults to an unbounded JobStore.
        executor: Where renders run. Defaults to a single-worker thread
            pool. A ProcessPoolExecutor runs them out of process.
    """

    def __init__(
        self,
        renderer,
        output_dir: str | Path,
        store: JobStore | None = None,
        executor: Executor | None = None,
    ):
        self.renderer = renderer
        self.output_dir = Path(output_dir)
        self.store = store if store is not None else JobStore()
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="slidecompose-render",
        )

    def artifact_path(self, job_id: str) -> Path:
        return self.output_dir / f"{job_id}.mp4"

    def submit(self, raw_sections) -> str:
        """Validate a raw section list and start rendering it.

        Returns:
            The new job id. The render runs in the background.

        Raises:
            ValidationError: invalid input; no job is created.
            AssemblyError: timeline invariant violated; no job is created.
        """
        return self.submit_descriptors(validate_sections(raw_sections))

    def submit_descriptors(self, descriptors: list[SectionDescriptor]) -> str:
        """Start rendering already-validated sections. See submit()."""
        composition = assemble_timeline(descriptors)

        job_id = uuid.uuid4().hex
        self.store.create(job_id)
        logger.info(
            "Job %s submitted: %d sections, %d frames",
            job_id, len(composition.sections), composition.total_duration_frames,
        )

        output_path = self.artifact_path(job_id)
        self.store.transition(job_id, JobStatus.RENDERING)
        logger.info("Job %s rendering -> %s", job_id, output_path)

        try:
            future = self.executor.submit(self.renderer.render, composition, output_path)
        except RuntimeError as e:
            # Executor already shut down: the render never starts.
            logger.error("Job %s could not be scheduled: %s", job_id, e)
            self.store.transition(job_id, JobStatus.ERROR, error_detail=str(e))
            return job_id
        future.add_done_callback(
            lambda f: self._on_render_done(job_id, composition, output_path, f)
        )
        return job_id

    def _on_render_done(
        self,
        job_id: str,
        composition: Composition,
        output_path: Path,
        future: Future,
    ) -> None:
        """Record the renderer's outcome as the job's terminal state."""
        exc = future.exception()
        if exc is not None:
            logger.error("Job %s render failed: %s", job_id, exc, exc_info=exc)
            self.store.transition(job_id, JobStatus.ERROR, error_detail=str(exc))
            return

        duration = math.ceil(composition.total_duration_frames / composition.fps)
        self.store.transition(
            job_id, JobStatus.COMPLETED,
            artifact_location=str(output_path),
            duration_seconds=duration,
        )
        logger.info("Job %s completed: %s (%ds)", job_id, output_path, duration)

    def get_status(self, job_id: str) -> RenderJob:
        """Current snapshot of a job. Never waits on the renderer.

        Raises:
            NotFoundError: unknown job id.
        """
        return self.store.get(job_id)

    def wait(
        self,
        job_id: str,
        timeout: float | None = None,
        poll_interval: float = 0.5,
    ) -> RenderJob:
        """Poll until the job reaches a terminal state.

        Raises:
            NotFoundError: unknown job id.
            TimeoutError: still running after timeout seconds.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            job = self.get_status(job_id)
            if job.status.is_terminal:
                return job
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(f"Job {job_id} still {job.status.value} after {timeout}s")
            time.sleep(poll_interval)

    def list_section_types(self) -> dict[str, str]:
        return list_section_types()

    def shutdown(self, wait: bool = True) -> None:
        """Stop the executor if this manager created it."""
        if self._owns_executor:
            self.executor.shutdown(wait=wait)
