"""Job queue and lifecycle state machine.

The queue owns every job, decides which job runs next and is the only
component that talks to the engine gateway. At most one job is in
CONVERTING at any time, system-wide.

State transitions:
- IDLE -> QUEUED | CONVERTING
- QUEUED -> CONVERTING
- CONVERTING -> COMPLETED | ERROR
- COMPLETED | ERROR -> QUEUED | CONVERTING (re-run)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from vbt.config.quality_config import FALLBACK_PRESET, resolve_preset
from vbt.engine.command_builder import OUTPUT_MEDIA_TYPE, build_output_name
from vbt.engine.gateway import EngineGateway
from vbt.errors import (
    AlreadyRunningError,
    EngineNotReadyError,
    EngineRuntimeError,
    InvalidTransitionError,
    JobBusyError,
    JobNotFoundError,
    VBTError,
)
from vbt.models.signals import ProgressSignal
from vbt.models.types import FileSource, Job, JobSnapshot, JobState, make_job_id
from vbt.progress.normalizer import ProgressNormalizer
from vbt.services.resources import ResourceManager

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.IDLE: frozenset({JobState.QUEUED, JobState.CONVERTING}),
    JobState.QUEUED: frozenset({JobState.CONVERTING}),
    JobState.CONVERTING: frozenset({JobState.COMPLETED, JobState.ERROR}),
    JobState.COMPLETED: frozenset({JobState.QUEUED, JobState.CONVERTING}),
    JobState.ERROR: frozenset({JobState.QUEUED, JobState.CONVERTING}),
}

INTERRUPTED_MESSAGE = "Conversion interrupted"


@dataclass
class RunOutcome:
    """Result of a single job run."""

    job_id: str
    name: str
    success: bool
    progress: int = 0
    preset: str | None = None
    output_name: str | None = None
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "job_id": self.job_id,
            "name": self.name,
            "success": self.success,
            "progress": self.progress,
            "preset": self.preset,
            "output_name": self.output_name,
            "error_message": self.error_message,
        }


@dataclass
class BatchConversionResult:
    """Result of batch conversion."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0  # Removed or finished elsewhere before their turn
    results: list[RunOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "results": [r.to_dict() for r in self.results],
            "errors": self.errors,
        }


class JobQueue:
    """Ordered collection of jobs with a single-runner execution policy."""

    def __init__(
        self,
        gateway: EngineGateway,
        resources: ResourceManager | None = None,
        preset_provider: Callable[[], str | None] | None = None,
        frame_rate: float = 30.0,
        output_extension: str = ".mp4",
        on_change: Callable[[JobSnapshot], None] | None = None,
    ):
        """Initialize JobQueue.

        Args:
            gateway: The engine gateway runs are executed on
            resources: Handle owner for inputs and outputs
            preset_provider: Returns the selected preset tag; read at run start
            frame_rate: Target frame rate for frame-based progress
            output_extension: Extension of converted outputs
            on_change: Called with a snapshot on every state or progress change
        """
        self._gateway = gateway
        self.resources = resources or ResourceManager()
        self._preset_provider = preset_provider or (lambda: FALLBACK_PRESET)
        self._frame_rate = frame_rate
        self._output_extension = output_extension
        self._on_change = on_change

        self._jobs: dict[str, Job] = {}
        self._by_identity: dict[str, str] = {}
        self._next_sequence = 0

        self._active_job_id: str | None = None
        self._active_normalizer: ProgressNormalizer | None = None
        self._idle_waiters: list[asyncio.Future] = []

    @property
    def active_job_id(self) -> str | None:
        """Id of the job currently in CONVERTING, if any."""
        return self._active_job_id

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._jobs

    def submit(self, sources: Iterable[FileSource]) -> list[Job]:
        """Create one IDLE job per file not already present.

        Files are matched on identity (name, size, modification time);
        duplicates are dropped and existing jobs are left untouched.

        Returns:
            The newly created jobs, in submission order
        """
        created = []
        for source in sources:
            identity = source.identity
            if identity in self._by_identity:
                logger.debug(f"Skipping duplicate submission: {source.name}")
                continue

            job = Job(
                job_id=make_job_id(identity),
                identity=identity,
                source=source,
                sequence=self._next_sequence,
            )
            self._next_sequence += 1
            self.resources.attach_input(job)
            self._jobs[job.job_id] = job
            self._by_identity[identity] = job.job_id
            created.append(job)
            logger.info(f"Added job {job.job_id}: {job.name} ({job.size} bytes)")
            self._notify(job)
        return created

    def get_job(self, job_id: str) -> Job:
        """Get a job by id.

        Raises:
            JobNotFoundError: If no such job exists
        """
        try:
            return self._jobs[job_id]
        except KeyError:
            raise JobNotFoundError(job_id) from None

    def jobs(self) -> list[Job]:
        """All jobs in submission order."""
        return sorted(self._jobs.values(), key=lambda j: j.sequence)

    def snapshot(self) -> list[JobSnapshot]:
        return [job.snapshot() for job in self.jobs()]

    def update_duration(self, job_id: str, seconds: float | None) -> None:
        """Record a probed duration for a job.

        Ignored when the job is gone or already has a duration. When the
        job is running, its normalizer learns the duration too.
        """
        job = self._jobs.get(job_id)
        if job is None or job.duration is not None:
            return
        if seconds is None or seconds <= 0:
            return
        job.duration = float(seconds)
        if job_id == self._active_job_id and self._active_normalizer is not None:
            self._active_normalizer.update_duration(job.duration)
        self._notify(job)

    async def run_one(self, job_id: str) -> RunOutcome:
        """Run a single job on the engine.

        Job-level failures are recorded on the job and reported in the
        returned outcome, never raised.

        Raises:
            JobNotFoundError: If no such job exists
            AlreadyRunningError: If any job is already converting
            EngineNotReadyError: If the engine is not ready (job unchanged)
        """
        job = self.get_job(job_id)
        if self._active_job_id is not None:
            raise AlreadyRunningError(self._active_job_id)
        if not self._gateway.is_ready:
            raise EngineNotReadyError()

        # A re-run drops the previous output before the job converts again
        self.resources.release_output(job)
        job.output_name = None
        job.error_message = None
        job.progress = 0
        self._transition(job, JobState.CONVERTING)

        normalizer = ProgressNormalizer(duration=job.duration, frame_rate=self._frame_rate)
        self._active_job_id = job.job_id
        self._active_normalizer = normalizer
        try:
            params = resolve_preset(self._preset_provider())
            job.preset = params.preset
            logger.info(f"Converting {job.name} with preset '{params.preset}'")

            input_data = await asyncio.to_thread(self.resources.read_input, job)
            output = await self._gateway.run_job(
                input_data,
                job.duration,
                params,
                on_signal=lambda signal: self._on_signal(job, normalizer, signal),
                on_log=lambda line: self._on_log(job, normalizer, line),
            )
        except asyncio.CancelledError:
            self._fail(job, INTERRUPTED_MESSAGE)
            raise
        except Exception as e:
            self._fail(job, _diagnostic(e))
            if not isinstance(e, (VBTError, OSError)):
                logger.exception(f"Unexpected error while converting {job.name}")
            return self._outcome(job, success=False)
        else:
            output_name = build_output_name(job.name, self._output_extension)
            self.resources.replace_output(job, output, OUTPUT_MEDIA_TYPE)
            job.output_name = output_name
            job.progress = normalizer.complete()
            self._transition(job, JobState.COMPLETED)
            logger.info(f"Completed {job.name} -> {output_name} ({len(output)} bytes)")
            return self._outcome(job, success=True)
        finally:
            self._active_job_id = None
            self._active_normalizer = None
            self._notify_idle()

    async def run_all(self) -> BatchConversionResult:
        """Run every non-completed job sequentially in submission order.

        The batch is fixed at call time: jobs added later are not included,
        and jobs removed or finished elsewhere before their turn are skipped.
        One job failing never stops the batch.

        Raises:
            EngineNotReadyError: If the engine is not ready
        """
        if not self._gateway.is_ready:
            raise EngineNotReadyError()

        batch = [
            job
            for job in self.jobs()
            if job.state not in (JobState.COMPLETED, JobState.CONVERTING)
        ]
        for job in batch:
            if job.state is not JobState.QUEUED:
                self._transition(job, JobState.QUEUED)

        result = BatchConversionResult(total=len(batch))
        logger.info(f"Starting batch of {len(batch)} jobs")

        for job in batch:
            await self._wait_until_idle()
            if self._jobs.get(job.job_id) is not job or job.state is not JobState.QUEUED:
                logger.debug(f"Skipping {job.name}: no longer queued")
                result.skipped += 1
                continue

            outcome = await self.run_one(job.job_id)
            result.results.append(outcome)
            if outcome.success:
                result.successful += 1
            else:
                result.failed += 1
                result.errors.append(f"{outcome.name}: {outcome.error_message}")

        logger.info(
            f"Batch finished: {result.successful} succeeded, {result.failed} failed, "
            f"{result.skipped} skipped"
        )
        return result

    def remove(self, job_id: str) -> None:
        """Remove a job and release its handles.

        Raises:
            JobNotFoundError: If no such job exists
            JobBusyError: If the job is converting
        """
        job = self.get_job(job_id)
        if job.state is JobState.CONVERTING:
            raise JobBusyError(job_id)

        del self._jobs[job_id]
        del self._by_identity[job.identity]
        self.resources.release_job(job)
        logger.info(f"Removed job {job_id}: {job.name}")

    def clear(self) -> int:
        """Remove every job and release all handles.

        Raises:
            JobBusyError: If any job is converting (nothing is removed)

        Returns:
            Number of removed jobs
        """
        if self._active_job_id is not None:
            raise JobBusyError(self._active_job_id)

        jobs = self.jobs()
        self._jobs.clear()
        self._by_identity.clear()
        self.resources.release_all(jobs)
        logger.info(f"Cleared {len(jobs)} jobs")
        return len(jobs)

    def _transition(self, job: Job, target: JobState) -> None:
        if target not in ALLOWED_TRANSITIONS[job.state]:
            raise InvalidTransitionError(job.job_id, job.state.value, target.value)
        logger.debug(f"Job {job.job_id}: {job.state.value} -> {target.value}")
        job.state = target
        self._notify(job)

    def _fail(self, job: Job, message: str) -> None:
        job.error_message = message
        self._transition(job, JobState.ERROR)
        logger.error(f"Conversion failed for {job.name}: {message}")

    def _on_signal(self, job: Job, normalizer: ProgressNormalizer, signal: ProgressSignal) -> None:
        percent = normalizer.feed(signal)
        if percent is not None:
            job.progress = percent
            self._notify(job)

    def _on_log(self, job: Job, normalizer: ProgressNormalizer, line: str) -> None:
        percent = normalizer.feed_log_line(line)
        if job.duration is None and normalizer.duration is not None:
            job.duration = normalizer.duration
        if percent is not None:
            job.progress = percent
            self._notify(job)

    def _outcome(self, job: Job, success: bool) -> RunOutcome:
        return RunOutcome(
            job_id=job.job_id,
            name=job.name,
            success=success,
            progress=job.progress,
            preset=job.preset,
            output_name=job.output_name,
            error_message=job.error_message,
        )

    def _notify(self, job: Job) -> None:
        if self._on_change is not None:
            self._on_change(job.snapshot())

    async def _wait_until_idle(self) -> None:
        while self._active_job_id is not None:
            waiter = asyncio.get_running_loop().create_future()
            self._idle_waiters.append(waiter)
            await waiter

    def _notify_idle(self) -> None:
        waiters, self._idle_waiters = self._idle_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)


def _diagnostic(error: Exception) -> str:
    if isinstance(error, EngineRuntimeError):
        return error.diagnostic
    return str(error) or type(error).__name__
