"""Core data models for Video Batch Transcoder."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any


class JobState(Enum):
    """Lifecycle state of a conversion job.

    Status transitions:
    - IDLE: Submitted, never run
    - QUEUED: Selected by a batch run, waiting for its turn
    - CONVERTING: The engine is running this job (at most one job system-wide)
    - COMPLETED: Output handle available
    - ERROR: Last run failed, diagnostic stored on the job
    """

    IDLE = "IDLE"
    QUEUED = "QUEUED"
    CONVERTING = "CONVERTING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class EngineStatus(Enum):
    """State of the single engine session, shown as the global banner."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    LOAD_FAILED = "load_failed"
    FATAL = "fatal"


def make_identity(name: str, size: int, modified: float) -> str:
    """Build the stable identity key of a submitted file.

    Two submissions with the same name, size and modification time are the
    same file, regardless of where the objects describing them came from.
    """
    return f"{name}|{size}|{int(modified * 1000)}"


def make_job_id(identity: str) -> str:
    """Short, display-friendly job id derived from the identity key."""
    return hashlib.sha1(identity.encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class FileSource:
    """A local file offered for conversion.

    Attributes:
        path: Location of the file on disk
        name: Display name (file name)
        size: Size in bytes
        modified: Modification time as a POSIX timestamp
    """

    path: Path
    name: str
    size: int
    modified: float

    @classmethod
    def from_path(cls, path: Path) -> FileSource:
        """Stat *path* and describe it.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(path)
        stat = path.stat()
        return cls(path=path, name=path.name, size=stat.st_size, modified=stat.st_mtime)

    @property
    def identity(self) -> str:
        return make_identity(self.name, self.size, self.modified)


@dataclass
class Job:
    """One submitted input file and its conversion lifecycle.

    Attributes:
        job_id: Id derived from the file identity
        identity: Identity key (name + size + modification time)
        source: The submitted file
        sequence: Submission order, used for batch ordering
        duration: Known duration in seconds (None until probed)
        input_handle: Preview handle for the input bytes
        output_handle: Download handle, present only when COMPLETED
        output_name: Download file name of the converted output
        error_message: Diagnostic of the last failed run
        state: Current lifecycle state
        progress: Percentage 0-100, monotonic within one run
        preset: Preset tag used by the latest run
    """

    job_id: str
    identity: str
    source: FileSource
    sequence: int
    duration: float | None = None
    input_handle: str | None = None
    output_handle: str | None = None
    output_name: str | None = None
    error_message: str | None = None
    state: JobState = JobState.IDLE
    progress: int = 0
    preset: str | None = None

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def size(self) -> int:
        return self.source.size

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            job_id=self.job_id,
            name=self.name,
            size=self.size,
            state=self.state,
            progress=self.progress,
            error_message=self.error_message,
            duration=self.duration,
            output_name=self.output_name if self.state is JobState.COMPLETED else None,
        )


@dataclass(frozen=True)
class JobSnapshot:
    """Read-only view of a job for presentation."""

    job_id: str
    name: str
    size: int
    state: JobState
    progress: int
    error_message: str | None = None
    duration: float | None = None
    output_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "job_id": self.job_id,
            "name": self.name,
            "size": self.size,
            "state": self.state.value,
            "progress": self.progress,
            "error_message": self.error_message,
            "duration": self.duration,
            "output_name": self.output_name,
        }
