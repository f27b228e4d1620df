"""Convert service for batch video conversion.

This service is the caller-facing API of the transcoder:
1. Start the engine session
2. Accept input files and probe their durations in the background
3. Convert one job or the whole batch, one job at a time
4. Export converted outputs
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path

from vbt.config.manager import Config, ConfigManager
from vbt.engine.backend import FFmpegBackend, LogCallback
from vbt.engine.gateway import EngineGateway
from vbt.errors import HandleError
from vbt.models.types import EngineStatus, FileSource, JobSnapshot, JobState
from vbt.services.probe import probe_duration
from vbt.services.queue import BatchConversionResult, JobQueue, RunOutcome
from vbt.services.resources import ResourceManager

logger = logging.getLogger(__name__)

DurationProbe = Callable[[Path], Awaitable[float | None]]


class ConvertService:
    """Service for converting video files on the local engine."""

    def __init__(
        self,
        gateway: EngineGateway,
        resources: ResourceManager | None = None,
        duration_probe: DurationProbe | None = None,
        quality_preset: str = "high",
        frame_rate: float = 30.0,
        output_extension: str = ".mp4",
        progress_callback: Callable[[JobSnapshot], None] | None = None,
    ):
        """Initialize ConvertService.

        Args:
            gateway: Engine gateway
            resources: Handle owner (default: a fresh ResourceManager)
            duration_probe: Async callable returning a file's duration in seconds
            quality_preset: Initially selected preset tag
            frame_rate: Target frame rate for frame-based progress
            output_extension: Extension of converted outputs
            progress_callback: Called with a job snapshot on every change
        """
        self.gateway = gateway
        self.resources = resources or ResourceManager()
        self.duration_probe = duration_probe
        self.quality_preset = quality_preset
        self.queue = JobQueue(
            gateway,
            resources=self.resources,
            preset_provider=lambda: self.quality_preset,
            frame_rate=frame_rate,
            output_extension=output_extension,
            on_change=progress_callback,
        )
        self._probe_tasks: set[asyncio.Task] = set()

    @classmethod
    def from_config(
        cls,
        config: ConfigManager | Config,
        progress_callback: Callable[[JobSnapshot], None] | None = None,
    ) -> ConvertService:
        """Build a service wired to ffmpeg/ffprobe as configured."""
        if isinstance(config, ConfigManager):
            config = config.config
        engine = config.engine

        backend = FFmpegBackend(
            ffmpeg_path=engine.ffmpeg_path,
            scratch_dir=engine.scratch_dir_path,
            frame_rate=engine.target_frame_rate,
        )
        gateway = EngineGateway(backend, init_timeout=engine.init_timeout_seconds)
        return cls(
            gateway,
            duration_probe=functools.partial(probe_duration, ffprobe_path=engine.ffprobe_path),
            quality_preset=config.conversion.quality_preset,
            frame_rate=engine.target_frame_rate,
            output_extension=config.conversion.output_extension,
            progress_callback=progress_callback,
        )

    @property
    def engine_status(self) -> EngineStatus:
        return self.gateway.status

    async def start(self, log_sink: LogCallback | None = None) -> None:
        """Initialize the engine session.

        Raises:
            SecurityPreconditionError: If the host cannot isolate the engine
            EngineLoadError: If the engine failed to load (retryable)
        """
        await self.gateway.initialize(log_sink)

    def add_files(self, paths: Iterable[Path]) -> list[JobSnapshot]:
        """Submit files for conversion.

        Duplicates of already submitted files are ignored. When called
        inside a running event loop, durations are probed in the background.

        Returns:
            Snapshots of the newly created jobs
        """
        sources = [FileSource.from_path(Path(p)) for p in paths]
        jobs = self.queue.submit(sources)

        if self.duration_probe is not None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
                logger.debug("No running event loop; duration probing skipped")
            if loop is not None:
                for job in jobs:
                    task = loop.create_task(self._probe(job.job_id, job.source.path))
                    self._probe_tasks.add(task)
                    task.add_done_callback(self._probe_tasks.discard)

        return [job.snapshot() for job in jobs]

    async def _probe(self, job_id: str, path: Path) -> None:
        try:
            duration = await self.duration_probe(path)
        except Exception as e:
            logger.debug(f"Duration probe failed for {path}: {e}")
            return
        self.queue.update_duration(job_id, duration)

    async def wait_for_probes(self) -> None:
        """Wait until every pending duration probe has finished."""
        if self._probe_tasks:
            await asyncio.gather(*list(self._probe_tasks), return_exceptions=True)

    async def convert(self, job_id: str) -> RunOutcome:
        return await self.queue.run_one(job_id)

    async def convert_all(self) -> BatchConversionResult:
        return await self.queue.run_all()

    def remove(self, job_id: str) -> None:
        self.queue.remove(job_id)

    def clear_all(self) -> int:
        return self.queue.clear()

    def snapshot(self) -> list[JobSnapshot]:
        return self.queue.snapshot()

    def get(self, job_id: str) -> JobSnapshot:
        return self.queue.get_job(job_id).snapshot()

    def export_output(self, job_id: str, dest_dir: Path) -> Path:
        """Write a completed job's output into *dest_dir*.

        Raises:
            JobNotFoundError: If no such job exists
            HandleError: If the job has no converted output
        """
        job = self.queue.get_job(job_id)
        if job.state is not JobState.COMPLETED or job.output_handle is None:
            raise HandleError(f"Job {job_id} has no converted output")
        return self.resources.store.export(job.output_handle, Path(dest_dir) / job.output_name)

    async def shutdown(self) -> None:
        """Stop background probes, tear down the engine and release every handle."""
        for task in list(self._probe_tasks):
            task.cancel()
        await self.wait_for_probes()
        await self.gateway.shutdown()
        self.queue.clear()
