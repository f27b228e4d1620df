"""Data models module for Video Batch Transcoder."""

from vbt.models.signals import (
    FrameSignal,
    ProgressSignal,
    RatioSignal,
    TimeSignal,
    TimeUnit,
)
from vbt.models.types import (
    EngineStatus,
    FileSource,
    Job,
    JobSnapshot,
    JobState,
    make_identity,
    make_job_id,
)

__all__ = [
    # Progress signals
    "FrameSignal",
    "ProgressSignal",
    "RatioSignal",
    "TimeSignal",
    "TimeUnit",
    # Core types
    "EngineStatus",
    "FileSource",
    "Job",
    "JobSnapshot",
    "JobState",
    "make_identity",
    "make_job_id",
]
