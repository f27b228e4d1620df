"""Error classification for the conversion workflow.

Maps exceptions to a category that decides how the caller reacts:
- fatal: the engine can never run in this environment (security precondition)
- retryable: the engine failed to load; starting again may succeed
- contract: an operation was called in the wrong state (busy, not ready, ...)
- job: a single conversion failed; other jobs are unaffected
- unknown: anything else (non-retryable, safe default)
"""

from dataclasses import dataclass
from enum import Enum

from vbt.errors import (
    AlreadyRunningError,
    EngineBusyError,
    EngineLoadError,
    EngineNotReadyError,
    EngineRuntimeError,
    HandleError,
    InvalidTransitionError,
    JobBusyError,
    JobNotFoundError,
    SecurityPreconditionError,
)


class ErrorCategory(Enum):
    """Error category classification."""

    FATAL = "fatal"
    RETRYABLE = "retryable"
    CONTRACT = "contract"
    JOB = "job"
    UNKNOWN = "unknown"


@dataclass
class ErrorClassification:
    """Result of error classification.

    Attributes:
        category: ErrorCategory value
        is_retryable: Whether repeating the same call may succeed
        is_global: Whether the error blocks every conversion, not one job
        message: Human-readable error text
    """

    category: str
    is_retryable: bool
    is_global: bool
    message: str


# Contract violations that clear up once the running job finishes
BUSY_ERRORS = (AlreadyRunningError, EngineBusyError, JobBusyError)

# Contract violations that repeating the call cannot fix
MISUSE_ERRORS = (EngineNotReadyError, InvalidTransitionError, JobNotFoundError, HandleError)

# Process exit codes per category
EXIT_CODES = {
    ErrorCategory.FATAL.value: 3,
    ErrorCategory.RETRYABLE.value: 2,
    ErrorCategory.CONTRACT.value: 4,
    ErrorCategory.JOB.value: 1,
    ErrorCategory.UNKNOWN.value: 1,
}


def classify_error(error: BaseException) -> ErrorClassification:
    """Classify an exception raised by the conversion workflow.

    Args:
        error: The exception to classify

    Returns:
        ErrorClassification for the exception
    """
    message = str(error) or type(error).__name__

    if isinstance(error, SecurityPreconditionError):
        return ErrorClassification(ErrorCategory.FATAL.value, False, True, message)

    if isinstance(error, EngineLoadError):
        return ErrorClassification(ErrorCategory.RETRYABLE.value, True, True, message)

    if isinstance(error, BUSY_ERRORS):
        return ErrorClassification(ErrorCategory.CONTRACT.value, True, False, message)

    if isinstance(error, MISUSE_ERRORS):
        return ErrorClassification(ErrorCategory.CONTRACT.value, False, False, message)

    if isinstance(error, EngineRuntimeError):
        # The job can be converted again
        return ErrorClassification(ErrorCategory.JOB.value, True, False, message)

    # Unknown error: default to non-retryable for safety
    return ErrorClassification(ErrorCategory.UNKNOWN.value, False, False, message)


def exit_code_for(classification: ErrorClassification) -> int:
    """Get the CLI exit code for a classified error."""
    return EXIT_CODES.get(classification.category, 1)
