"""Engine gateway: owns the lifecycle of the single codec engine session.

The gateway is a pure execution surface. It gates loading on the host's
isolation precondition, serializes runs (one in flight at a time), and
routes progress signals and log lines to the run that produced them. It
never touches job state.
"""

from __future__ import annotations

import asyncio
import logging

from vbt.config.quality_config import EncodingParameters
from vbt.engine.backend import EngineBackend, LogCallback, SignalCallback
from vbt.errors import (
    EngineBusyError,
    EngineLoadError,
    EngineNotReadyError,
    EngineRuntimeError,
    SecurityPreconditionError,
)
from vbt.models.signals import ProgressSignal
from vbt.models.types import EngineStatus

logger = logging.getLogger(__name__)

# Safety timeout for engine initialization (seconds)
DEFAULT_INIT_TIMEOUT = 20.0


class EngineGateway:
    """Single engine session with explicit init/ready/fatal lifecycle."""

    def __init__(self, backend: EngineBackend, init_timeout: float = DEFAULT_INIT_TIMEOUT):
        """Initialize EngineGateway.

        Args:
            backend: The engine implementation
            init_timeout: Seconds allowed for engine bootstrap
        """
        self._backend = backend
        self._init_timeout = init_timeout
        self._status = EngineStatus.UNLOADED
        self._last_error: Exception | None = None
        self._load_task: asyncio.Task | None = None
        self._log_sink: LogCallback | None = None
        self._running = False
        self._run_signal: SignalCallback | None = None
        self._run_log: LogCallback | None = None

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def is_ready(self) -> bool:
        return self._status is EngineStatus.READY

    @property
    def is_busy(self) -> bool:
        return self._running

    @property
    def last_error(self) -> Exception | None:
        """Error that put the session in LOAD_FAILED or FATAL, if any."""
        return self._last_error

    async def initialize(self, log_sink: LogCallback | None = None) -> None:
        """Bring the engine session to READY.

        Calling again while READY is a no-op; calling while a load is in
        progress waits for that same load.

        Raises:
            SecurityPreconditionError: If the host cannot isolate the engine
                (checked before any loading, and permanent for this session)
            EngineLoadError: If bootstrap fails or exceeds the safety timeout
        """
        if self._status is EngineStatus.FATAL:
            raise self._last_error
        if self._status is EngineStatus.READY:
            return
        if self._load_task is not None:
            await asyncio.shield(self._load_task)
            return

        if log_sink is not None:
            self._log_sink = log_sink

        if not self._backend.check_isolation():
            error = SecurityPreconditionError(
                f"{self._backend.name} backend reported that the host cannot isolate it"
            )
            self._status = EngineStatus.FATAL
            self._last_error = error
            logger.error(str(error))
            raise error

        self._status = EngineStatus.LOADING
        logger.info(f"Loading {self._backend.name} engine")
        self._load_task = asyncio.create_task(self._load())
        await asyncio.shield(self._load_task)

    async def _load(self) -> None:
        try:
            await asyncio.wait_for(self._backend.load(self._emit_log), timeout=self._init_timeout)
        except Exception as exc:
            if isinstance(exc, EngineLoadError):
                error = exc
            elif isinstance(exc, asyncio.TimeoutError):
                error = EngineLoadError(f"timed out after {self._init_timeout:g}s")
            else:
                error = EngineLoadError(str(exc) or type(exc).__name__)
            self._status = EngineStatus.LOAD_FAILED
            self._last_error = error
            logger.error(str(error))
            if error is exc:
                raise
            raise error from exc
        else:
            self._status = EngineStatus.READY
            self._last_error = None
            logger.info(f"{self._backend.name} engine ready")
        finally:
            self._load_task = None

    async def run_job(
        self,
        input_data: bytes,
        known_duration: float | None,
        params: EncodingParameters,
        on_signal: SignalCallback | None = None,
        on_log: LogCallback | None = None,
    ) -> bytes:
        """Execute one conversion.

        The callbacks receive only this run's signals and log lines; they are
        detached when the run ends.

        Args:
            input_data: Raw input bytes
            known_duration: Input duration in seconds, if known
            params: Resolved encoding parameters
            on_signal: Receives progress signals of this run
            on_log: Receives log lines of this run

        Returns:
            Raw output bytes

        Raises:
            EngineNotReadyError: If the session is not READY
            EngineBusyError: If another run is in flight
            EngineRuntimeError: If the run exits abnormally
        """
        if not self.is_ready:
            raise EngineNotReadyError()
        if self._running:
            raise EngineBusyError()

        self._running = True
        self._run_signal = on_signal
        self._run_log = on_log
        duration_str = f"{known_duration:.2f}s" if known_duration else "unknown"
        logger.info(
            f"Run started: {len(input_data)} bytes, duration {duration_str}, preset {params.preset}"
        )
        try:
            return await self._backend.execute(
                input_data, params, self._emit_signal, self._emit_log
            )
        except EngineRuntimeError:
            raise
        except Exception as exc:
            raise EngineRuntimeError(str(exc) or type(exc).__name__) from exc
        finally:
            self._running = False
            self._run_signal = None
            self._run_log = None

    async def shutdown(self) -> None:
        """Tear the engine down.

        Raises:
            EngineBusyError: If a run is still in flight
        """
        if self._running:
            raise EngineBusyError("Cannot shut down while a run is in flight")
        await self._backend.close()
        if self._status is not EngineStatus.FATAL:
            self._status = EngineStatus.UNLOADED
        logger.info(f"{self._backend.name} engine shut down")

    def _emit_signal(self, signal: ProgressSignal) -> None:
        if self._run_signal is not None:
            self._run_signal(signal)

    def _emit_log(self, line: str) -> None:
        if self._log_sink is not None:
            self._log_sink(line)
        if self._run_log is not None:
            self._run_log(line)
