"""Resource lifecycle management for conversion jobs.

Every input preview and every converted output is exposed through an
opaque handle. Handles are owned by exactly one job and are revoked exactly
once: on replacement by a new output, on job removal, or on teardown.
"""

import logging
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path

from vbt.errors import HandleError
from vbt.models.types import Job

logger = logging.getLogger(__name__)

HANDLE_PREFIX = "blob:vbt/"


@dataclass
class _HandleEntry:
    """Backing data of a live handle: in-memory bytes or a file on disk."""

    media_type: str
    data: bytes | None = None
    path: Path | None = None

    @property
    def size(self) -> int:
        if self.data is not None:
            return len(self.data)
        return self.path.stat().st_size


class HandleStore:
    """Registry of opaque handles over in-memory bytes or file paths."""

    def __init__(self):
        self._entries: dict[str, _HandleEntry] = {}
        self.created_count = 0
        self.revoked_count = 0

    def create(
        self,
        data: bytes | None = None,
        path: Path | None = None,
        media_type: str = "application/octet-stream",
    ) -> str:
        """Register a new handle.

        Exactly one of ``data`` or ``path`` must be given.
        """
        if (data is None) == (path is None):
            raise ValueError("Exactly one of data or path is required")

        handle = f"{HANDLE_PREFIX}{uuid.uuid4()}"
        self._entries[handle] = _HandleEntry(
            media_type=media_type, data=data, path=Path(path) if path else None
        )
        self.created_count += 1
        logger.debug(f"Created handle {handle} ({media_type})")
        return handle

    def is_live(self, handle: str) -> bool:
        return handle in self._entries

    def live_handles(self) -> list[str]:
        return list(self._entries)

    def media_type(self, handle: str) -> str:
        return self._entry(handle).media_type

    def read(self, handle: str) -> bytes:
        """Return the bytes behind a live handle.

        Raises:
            HandleError: If the handle is unknown or revoked
        """
        entry = self._entry(handle)
        if entry.data is not None:
            return entry.data
        return entry.path.read_bytes()

    def revoke(self, handle: str) -> None:
        """Revoke a handle. A handle can be revoked only once.

        Raises:
            HandleError: If the handle is unknown or already revoked
        """
        if self._entries.pop(handle, None) is None:
            raise HandleError(f"Unknown or already revoked handle: {handle}")
        self.revoked_count += 1
        logger.debug(f"Revoked handle {handle}")

    def export(self, handle: str, dest: Path) -> Path:
        """Write the data behind a live handle to *dest*.

        Returns:
            The written path
        """
        entry = self._entry(handle)
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        if entry.data is not None:
            dest.write_bytes(entry.data)
        else:
            shutil.copy2(entry.path, dest)
        logger.info(f"Exported {handle} to {dest} ({entry.size} bytes)")
        return dest

    def _entry(self, handle: str) -> _HandleEntry:
        try:
            return self._entries[handle]
        except KeyError:
            raise HandleError(f"Unknown or already revoked handle: {handle}") from None


class ResourceManager:
    """Owns the input and output handles of every job.

    Handle ids are mirrored on the job (``input_handle``/``output_handle``)
    so presentation code can show them; this class is the only writer of
    those fields.
    """

    def __init__(self, store: HandleStore | None = None):
        self.store = store or HandleStore()

    def attach_input(self, job: Job) -> str:
        """Create the preview handle of a newly submitted job."""
        if job.input_handle is not None:
            return job.input_handle
        job.input_handle = self.store.create(path=job.source.path, media_type=_guess_type(job))
        return job.input_handle

    def read_input(self, job: Job) -> bytes:
        if job.input_handle is None:
            raise HandleError(f"Job {job.job_id} has no input handle")
        return self.store.read(job.input_handle)

    def replace_output(self, job: Job, data: bytes, media_type: str) -> str:
        """Attach a new output to *job*, revoking the previous one first."""
        self.release_output(job)
        job.output_handle = self.store.create(data=data, media_type=media_type)
        return job.output_handle

    def release_output(self, job: Job) -> None:
        if job.output_handle is not None:
            handle, job.output_handle = job.output_handle, None
            self.store.revoke(handle)

    def release_job(self, job: Job) -> None:
        """Revoke every handle the job owns."""
        self.release_output(job)
        if job.input_handle is not None:
            handle, job.input_handle = job.input_handle, None
            self.store.revoke(handle)

    def release_all(self, jobs) -> None:
        for job in jobs:
            self.release_job(job)
        remaining = self.store.live_handles()
        if remaining:
            logger.warning(f"{len(remaining)} handles were not owned by any job")


def _guess_type(job: Job) -> str:
    suffix = job.source.path.suffix.lower()
    return {
        ".webm": "video/webm",
        ".mp4": "video/mp4",
        ".mkv": "video/x-matroska",
        ".mov": "video/quicktime",
        ".avi": "video/x-msvideo",
    }.get(suffix, "application/octet-stream")
