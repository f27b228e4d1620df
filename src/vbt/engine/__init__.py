"""Codec engine module for Video Batch Transcoder."""

from vbt.engine.backend import EngineBackend, FFmpegBackend, parse_progress_line
from vbt.engine.gateway import DEFAULT_INIT_TIMEOUT, EngineGateway

__all__ = [
    "DEFAULT_INIT_TIMEOUT",
    "EngineBackend",
    "EngineGateway",
    "FFmpegBackend",
    "parse_progress_line",
]
