"""Pytest configuration and fixtures for Video Batch Transcoder tests."""

import asyncio
import os
import sys
from pathlib import Path

import pytest

from vbt.engine.backend import EngineBackend
from vbt.engine.gateway import EngineGateway
from vbt.errors import EngineRuntimeError
from vbt.models.signals import RatioSignal, TimeSignal, TimeUnit
from vbt.services.convert import ConvertService


class FakeBackend(EngineBackend):
    """In-process engine used instead of ffmpeg.

    Inputs starting with ``FAIL`` make the run fail with a diagnostic; any
    other input is "converted" by prefixing it with ``MP4:``. ``signals`` and
    ``log_lines`` are replayed on every run. When ``gate`` is set, a run
    blocks until the event is set.
    """

    name = "fake"

    def __init__(
        self,
        isolated: bool = True,
        load_error: Exception | None = None,
        load_delay: float = 0.0,
        signals=None,
        log_lines=None,
    ):
        self.isolated = isolated
        self.load_error = load_error
        self.load_delay = load_delay
        self.signals = list(signals or [])
        self.log_lines = list(log_lines or [])
        self.gate: asyncio.Event | None = None
        self.started: asyncio.Event | None = None
        self.isolation_checks = 0
        self.load_calls = 0
        self.close_calls = 0
        self.executed: list[bytes] = []

    def check_isolation(self) -> bool:
        self.isolation_checks += 1
        return self.isolated

    async def load(self, log):
        self.load_calls += 1
        log("fake engine starting")
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        if self.load_error is not None:
            raise self.load_error

    async def execute(self, input_data, params, on_signal, on_log):
        self.executed.append(input_data)
        if self.started is not None:
            self.started.set()
        for line in self.log_lines:
            on_log(line)
        for signal in self.signals:
            on_signal(signal)
            await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        if input_data.startswith(b"FAIL"):
            raise EngineRuntimeError(f"Invalid data found when processing input: {input_data!r}", 1)
        return b"MP4:" + input_data

    async def close(self):
        self.close_calls += 1


@pytest.fixture
def backend_factory():
    """Return the FakeBackend class for tests that need custom behaviour."""
    return FakeBackend


@pytest.fixture
def fake_backend():
    """Create a FakeBackend that reports a 120 s clip halfway through."""
    return FakeBackend(
        signals=[
            RatioSignal(0.1),
            TimeSignal(60000),
            TimeSignal(90.0, TimeUnit.SECONDS),
        ],
        log_lines=["Input #0, matroska,webm, from 'input':", "  Duration: 00:02:00.00, start: 0"],
    )


@pytest.fixture
def gateway(fake_backend):
    """Create an EngineGateway over the fake backend (not initialized)."""
    return EngineGateway(fake_backend, init_timeout=1.0)


@pytest.fixture
def service(gateway):
    """Create a ConvertService over the fake gateway, without duration probing."""
    return ConvertService(gateway)


@pytest.fixture
def make_video(tmp_path):
    """Factory writing a small video file and returning its path."""
    counter = {"n": 0}

    def _make(name: str = None, content: bytes = None, mtime: float = None) -> Path:
        counter["n"] += 1
        name = name or f"clip_{counter['n']}.webm"
        path = tmp_path / "inputs" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content if content is not None else f"WEBM{counter['n']}".encode())
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _make


@pytest.fixture
def temp_dir(tmp_path):
    """Create a temporary directory for tests."""
    return tmp_path


@pytest.fixture(autouse=True)
def clean_cli_modules():
    """Clean up CLI modules before and after each test to prevent state pollution.

    Help texts are localized at import time, so locale tests need a fresh
    import of the CLI modules.
    """
    modules_to_remove = [mod for mod in list(sys.modules.keys()) if mod.startswith("vbt.cli")]
    for mod in modules_to_remove:
        sys.modules.pop(mod, None)

    yield

    modules_to_remove = [mod for mod in list(sys.modules.keys()) if mod.startswith("vbt.cli")]
    for mod in modules_to_remove:
        sys.modules.pop(mod, None)
