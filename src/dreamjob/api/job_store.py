"""Job handoff store for the Dreamjob API.

A job is written by the submission page, read back by the result page after
navigation, updated once with the generation outcome, and removed when the
user chooses "try again" or "home".  This module isolates that key/value
contract from ``dreamjob.api.main`` so route handlers can focus on HTTP
concerns.

The store is deliberately small:

- :class:`JobStore` defines ``put`` / ``get`` / ``remove`` keyed by job id.
- :class:`MemoryJobStore` keeps jobs in a dict for the lifetime of the
  server process.  Nothing is written to disk.
- Records expire ``ttl_seconds`` after they are first stored.  Expired
  records are purged lazily on every access, so a tab closed mid-generation
  cannot leave a job behind forever.
- Status only moves forward.  ``put`` refuses to change a finished job,
  and :func:`complete_job` / :func:`fail_job` only
  accept pending jobs.

All access happens on the event loop thread, so no locking is needed.
"""

from __future__ import annotations

import base64
import binascii
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from dreamjob.api.models import GenerationJob, GenerationResult, JobStatus
from dreamjob.core.errors import JobStateError

logger = logging.getLogger(__name__)


class JobStore(ABC):
    """Key/value persistence for :class:`GenerationJob` records."""

    @abstractmethod
    def put(self, job: GenerationJob) -> GenerationJob:
        """Store ``job`` under its id, replacing any previous record."""

    @abstractmethod
    def get(self, job_id: str) -> GenerationJob | None:
        """Return the job stored under ``job_id``, or ``None``."""

    @abstractmethod
    def remove(self, job_id: str) -> bool:
        """Delete the job stored under ``job_id``.  Returns whether it existed."""


class MemoryJobStore(JobStore):
    """In-process job table with time-based expiry.

    Args:
        ttl_seconds: Lifetime of a record, measured from its first ``put``.
        clock: Callable returning the current time in epoch seconds.
    """

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.time) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._jobs: dict[str, GenerationJob] = {}
        self._expires_at: dict[str, float] = {}

    def __len__(self) -> int:
        self.purge_expired()
        return len(self._jobs)

    def purge_expired(self) -> int:
        """Drop every expired record.  Returns the number removed."""
        now = self._clock()
        expired = [job_id for job_id, deadline in self._expires_at.items() if now >= deadline]
        for job_id in expired:
            del self._jobs[job_id]
            del self._expires_at[job_id]
        if expired:
            logger.info(f"Purged {len(expired)} expired job(s)")
        return len(expired)

    def put(self, job: GenerationJob) -> GenerationJob:
        self.purge_expired()
        existing = self._jobs.get(job.id)
        if existing is not None and existing.is_finished and job != existing:
            raise JobStateError(
                f"Job {job.id} is already {existing.status.value} and cannot be overwritten"
            )
        self._jobs[job.id] = job.model_copy(deep=True)
        if existing is None:
            self._expires_at[job.id] = self._clock() + self.ttl_seconds
        return job

    def get(self, job_id: str) -> GenerationJob | None:
        self.purge_expired()
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job is not None else None

    def remove(self, job_id: str) -> bool:
        self.purge_expired()
        self._expires_at.pop(job_id, None)
        return self._jobs.pop(job_id, None) is not None


# ---------------------------------------------------------------------------
# Status transitions.
# ---------------------------------------------------------------------------


def _require_pending(job: GenerationJob) -> None:
    if job.status is not JobStatus.PENDING:
        raise JobStateError(f"Job {job.id} is already {job.status.value}")


def complete_job(store: JobStore, job: GenerationJob, result: GenerationResult) -> GenerationJob:
    """Move a pending job to ``completed`` and persist it."""
    _require_pending(job)
    updated = job.model_copy(update={"status": JobStatus.COMPLETED, "result": result})
    return store.put(updated)


def fail_job(store: JobStore, job: GenerationJob, error: str) -> GenerationJob:
    """Move a pending job to ``failed`` and persist it."""
    _require_pending(job)
    updated = job.model_copy(update={"status": JobStatus.FAILED, "error": error})
    return store.put(updated)


# ---------------------------------------------------------------------------
# Inline image encoding.
# ---------------------------------------------------------------------------


def encode_data_uri(data: bytes, content_type: str) -> str:
    """Encode bytes as a base64 ``data:`` URI."""
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_uri(uri: str) -> tuple[bytes, str]:
    """Decode a base64 ``data:`` URI into ``(bytes, content_type)``.

    Raises:
        ValueError: If ``uri`` is not a base64 data URI.
    """
    if not uri.startswith("data:") or "," not in uri:
        raise ValueError("not a data URI")
    header, _, payload = uri[5:].partition(",")
    media_type, _, encoding = header.rpartition(";")
    if encoding != "base64":
        raise ValueError("data URI is not base64-encoded")
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError("data URI payload is not valid base64") from e
    return data, media_type or "application/octet-stream"
