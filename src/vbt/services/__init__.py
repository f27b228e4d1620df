"""Service layer module for Video Batch Transcoder."""

from vbt.services.convert import ConvertService
from vbt.services.error_handling import ErrorCategory, ErrorClassification, classify_error
from vbt.services.queue import BatchConversionResult, JobQueue, RunOutcome
from vbt.services.resources import HandleStore, ResourceManager

__all__ = [
    "ConvertService",
    "JobQueue",
    "RunOutcome",
    "BatchConversionResult",
    "HandleStore",
    "ResourceManager",
    "ErrorCategory",
    "ErrorClassification",
    "classify_error",
]
