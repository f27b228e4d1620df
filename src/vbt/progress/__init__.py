"""Progress normalization module for Video Batch Transcoder."""

from vbt.progress.normalizer import (
    PROGRESS_COMPLETE,
    ProgressNormalizer,
    parse_timestamp,
    resolve_time_seconds,
)

__all__ = [
    "PROGRESS_COMPLETE",
    "ProgressNormalizer",
    "parse_timestamp",
    "resolve_time_seconds",
]
