"""Exception hierarchy for Video Batch Transcoder.

Engine-level errors (security precondition, load) are global and block
every conversion. Job-level errors are recorded on the failing job and
never propagate to other jobs.
"""

__all__ = [
    "VBTError",
    "SecurityPreconditionError",
    "EngineLoadError",
    "EngineNotReadyError",
    "EngineBusyError",
    "EngineRuntimeError",
    "AlreadyRunningError",
    "JobBusyError",
    "JobNotFoundError",
    "InvalidTransitionError",
    "HandleError",
]


class VBTError(Exception):
    """Base class for all Video Batch Transcoder errors."""


class SecurityPreconditionError(VBTError):
    """Raised when the host cannot provide the isolation the engine requires.

    This is a terminal condition for the engine session: retrying without
    changing the environment cannot succeed.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Engine isolation precondition not met: {reason}")


class EngineLoadError(VBTError):
    """Raised when the engine could not be bootstrapped. Retryable."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to load conversion engine: {reason}")


class EngineNotReadyError(VBTError):
    """Raised when a run is requested before the engine finished loading."""

    def __init__(self, message: str = "Conversion engine is not ready"):
        super().__init__(message)


class EngineBusyError(VBTError):
    """Raised when a second run is submitted while one is in flight."""

    def __init__(self, message: str = "Conversion engine is already running a job"):
        super().__init__(message)


class EngineRuntimeError(VBTError):
    """Raised when a run exits abnormally.

    Attributes:
        diagnostic: The engine's own diagnostic text, verbatim
        exit_code: Process exit code, when the engine reports one
    """

    def __init__(self, diagnostic: str, exit_code: int | None = None):
        self.diagnostic = diagnostic
        self.exit_code = exit_code
        super().__init__(diagnostic)


class AlreadyRunningError(VBTError):
    """Raised by the job queue when another job is currently converting."""

    def __init__(self, running_job_id: str):
        self.running_job_id = running_job_id
        super().__init__(f"Job {running_job_id} is already converting")


class JobBusyError(VBTError):
    """Raised when removing a job whose run is still active."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} is converting and cannot be removed")


class JobNotFoundError(VBTError, KeyError):
    """Raised for an unknown job id."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Unknown job: {job_id}")

    def __str__(self) -> str:
        return f"Unknown job: {self.job_id}"


class InvalidTransitionError(VBTError):
    """Raised on a lifecycle transition the state machine does not allow."""

    def __init__(self, job_id: str, current: str, target: str):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Job {job_id}: cannot move from {current} to {target}")


class HandleError(VBTError):
    """Raised when an unknown or already revoked handle is used."""
