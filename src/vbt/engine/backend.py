"""Codec engine backends.

A backend is the opaque engine behind the gateway: it reports whether the
host can isolate it, bootstraps itself, and executes one run at a time,
streaming progress signals and log lines through callbacks.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import tempfile
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from pathlib import Path

from vbt.config.quality_config import EncodingParameters
from vbt.engine.command_builder import build_transcode_command, command_as_string
from vbt.errors import EngineNotReadyError, EngineRuntimeError
from vbt.models.signals import FrameSignal, ProgressSignal, TimeSignal, TimeUnit

logger = logging.getLogger(__name__)

LogCallback = Callable[[str], None]
SignalCallback = Callable[[ProgressSignal], None]

# Number of stderr lines kept as the diagnostic of a failed run
STDERR_TAIL_LINES = 20

_PROGRESS_KV = re.compile(r"^(\w+)=(.*)$")


class EngineBackend(ABC):
    """Contract every codec engine implementation must fulfil."""

    name: str = "engine"

    @abstractmethod
    def check_isolation(self) -> bool:
        """Report truthfully whether the host provides the isolation the engine needs."""

    @abstractmethod
    async def load(self, log: LogCallback) -> None:
        """Bootstrap the engine. Raises on any failure."""

    @abstractmethod
    async def execute(
        self,
        input_data: bytes,
        params: EncodingParameters,
        on_signal: SignalCallback,
        on_log: LogCallback,
    ) -> bytes:
        """Run one conversion and return the output bytes.

        Raises:
            EngineRuntimeError: If the run exits abnormally
        """

    async def close(self) -> None:
        """Release engine resources."""


def parse_progress_line(line: str) -> ProgressSignal | None:
    """Translate one ``-progress`` key=value line into a progress signal.

    ``out_time_ms`` is skipped: ffmpeg reports microseconds under that key,
    and ``out_time_us`` carries the same value with an explicit unit.
    """
    match = _PROGRESS_KV.match(line.strip())
    if not match:
        return None
    key, value = match.group(1), match.group(2).strip()

    try:
        if key == "frame":
            return FrameSignal(int(value))
        if key == "out_time_us":
            return TimeSignal(float(value), TimeUnit.MICROSECONDS)
    except ValueError:
        return None

    if key == "out_time":
        return TimeSignal(value)
    return None


class FFmpegBackend(EngineBackend):
    """Runs conversions with a local ffmpeg binary.

    Every run gets its own temporary directory inside a private scratch
    area; the directory is removed when the run ends, whatever the outcome.
    """

    name = "ffmpeg"

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        scratch_dir: Path | None = None,
        frame_rate: float | None = None,
    ):
        """Initialize FFmpegBackend.

        Args:
            ffmpeg_path: ffmpeg executable (name on PATH or absolute path)
            scratch_dir: Private directory for run buffers (default: ~/.cache/vbt/scratch)
            frame_rate: Output frame rate; None keeps the source rate
        """
        self.ffmpeg_path = ffmpeg_path
        self.scratch_dir = scratch_dir or Path.home() / ".cache" / "vbt" / "scratch"
        self.frame_rate = frame_rate
        self._binary: str | None = None

    def check_isolation(self) -> bool:
        """The scratch area must be a directory only the current user can access."""
        try:
            self.scratch_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
            stat = self.scratch_dir.stat()
            if hasattr(os, "getuid") and stat.st_uid != os.getuid():
                logger.error(f"Scratch directory {self.scratch_dir} is owned by another user")
                return False
            if stat.st_mode & 0o077:
                self.scratch_dir.chmod(0o700)
                stat = self.scratch_dir.stat()
            return not stat.st_mode & 0o077
        except OSError as e:
            logger.error(f"Cannot prepare scratch directory {self.scratch_dir}: {e}")
            return False

    async def load(self, log: LogCallback) -> None:
        binary = shutil.which(self.ffmpeg_path)
        if binary is None:
            raise FileNotFoundError(f"ffmpeg binary not found: {self.ffmpeg_path}")

        log(f"Starting {binary}")
        proc = await asyncio.create_subprocess_exec(
            binary,
            "-version",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise RuntimeError(
                f"ffmpeg -version exited with code {proc.returncode}: "
                f"{stderr.decode('utf-8', 'replace').strip()}"
            )

        version_line = stdout.decode("utf-8", "replace").splitlines()[:1]
        if version_line:
            log(version_line[0])
        self._binary = binary

    async def execute(
        self,
        input_data: bytes,
        params: EncodingParameters,
        on_signal: SignalCallback,
        on_log: LogCallback,
    ) -> bytes:
        if self._binary is None:
            raise EngineNotReadyError("ffmpeg backend is not loaded")

        run_dir = Path(
            await asyncio.to_thread(tempfile.mkdtemp, prefix="run-", dir=self.scratch_dir)
        )
        try:
            input_file = run_dir / "input"
            output_file = run_dir / "output.mp4"
            await asyncio.to_thread(input_file.write_bytes, input_data)

            cmd = build_transcode_command(
                self._binary, input_file, output_file, params, frame_rate=self.frame_rate
            )
            logger.debug(f"Command: {command_as_string(cmd)}")

            exit_code, stderr_tail = await self._run(cmd, on_signal, on_log)

            if exit_code != 0:
                diagnostic = "\n".join(stderr_tail) or f"ffmpeg exited with code {exit_code}"
                raise EngineRuntimeError(diagnostic, exit_code=exit_code)
            if not output_file.exists() or output_file.stat().st_size == 0:
                raise EngineRuntimeError("ffmpeg finished without producing output", exit_code)

            return await asyncio.to_thread(output_file.read_bytes)
        finally:
            await asyncio.to_thread(shutil.rmtree, run_dir, ignore_errors=True)

    async def _run(
        self,
        cmd: list[str],
        on_signal: SignalCallback,
        on_log: LogCallback,
    ) -> tuple[int, list[str]]:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)

        async def read_progress() -> None:
            async for raw in proc.stdout:
                signal = parse_progress_line(raw.decode("utf-8", "replace"))
                if signal is not None:
                    on_signal(signal)

        async def read_log() -> None:
            async for raw in proc.stderr:
                line = raw.decode("utf-8", "replace").rstrip()
                if line:
                    stderr_tail.append(line)
                    on_log(line)

        # Both pipes are drained together; a full stderr buffer would stall ffmpeg
        try:
            await asyncio.gather(read_progress(), read_log())
            exit_code = await proc.wait()
        except BaseException:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        logger.debug(f"ffmpeg exited with code {exit_code}")
        return exit_code, list(stderr_tail)
