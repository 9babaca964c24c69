"""
External lookup job dispatch and status tracking.

Unknown catalog items are handed to an out-of-process worker through a
durable queue. Progress is reported through short-lived status records in a
key-value store under ``job:{id}:status``:

    {"status": "queued", "finished": false, "createdAt": "2024-01-01T00:00:00+00:00"}

The worker overwrites the record as it goes and finally calls
``mark_finished``; if it never reports back the record simply expires.
A missing record means "not found", never "still running".
"""

import json
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any, Protocol

from figsync.core.logging import get_logger
from figsync.schemas.sync import ImportRecord, JobStatusRecord
from figsync.services.exceptions import (
    JobNotFoundError,
    JobStatusWriteError,
    StatusStoreError,
)

logger = get_logger(__name__)

QUEUED_STATUS = "queued"
CSV_JOB_TYPE = "csv"


class JobQueue(Protocol):
    def enqueue(self, payload: dict[str, Any]) -> str:
        """Enqueue a job and return its id. Raises JobQueueError on failure."""
        ...


class StatusStore(Protocol):
    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        """Raises StatusStoreError on failure."""
        ...

    def get(self, key: str) -> str | None:
        """Raises StatusStoreError on failure."""
        ...


def status_key(job_id: str) -> str:
    return f"job:{job_id}:status"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatusTracker:
    """Reads and writes job status records."""

    def __init__(
        self,
        store: StatusStore,
        ttl_seconds: int = 600,
        completed_ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.completed_ttl_seconds = completed_ttl_seconds
        self.clock = clock

    def mark_queued(self, job_id: str) -> JobStatusRecord:
        record = JobStatusRecord(
            job_id=job_id,
            status=QUEUED_STATUS,
            finished=False,
            created_at=self.clock(),
        )
        self._write(record, self.ttl_seconds)
        return record

    def mark_finished(self, job_id: str, status: str) -> JobStatusRecord:
        """Write the terminal record; kept longer than in-progress records."""
        record = JobStatusRecord(
            job_id=job_id,
            status=status,
            finished=True,
            created_at=self.clock(),
        )
        self._write(record, self.completed_ttl_seconds)
        return record

    def get(self, job_id: str) -> JobStatusRecord:
        """
        Look up a job's status.

        Raises:
            JobNotFoundError: no record (expired or never existed).
            StatusStoreError: the store failed or the record is malformed.
        """
        raw = self.store.get(status_key(job_id))
        if raw is None:
            raise JobNotFoundError(job_id)

        try:
            data = json.loads(raw)
            return JobStatusRecord(
                job_id=job_id,
                status=data["status"],
                finished=data["finished"],
                created_at=data["createdAt"],
            )
        except (ValueError, KeyError, TypeError) as e:
            raise StatusStoreError(f"Malformed status record for job {job_id}") from e

    def _write(self, record: JobStatusRecord, ttl_seconds: int) -> None:
        value = json.dumps(
            {
                "status": record.status,
                "finished": record.finished,
                "createdAt": record.created_at.isoformat(),
            }
        )
        self.store.set_with_ttl(status_key(record.job_id), value, ttl_seconds)


class JobDispatcher:
    """Queues unknown-item rows for the external lookup worker."""

    def __init__(self, queue: JobQueue, tracker: JobStatusTracker):
        self.queue = queue
        self.tracker = tracker

    def dispatch(self, rows: Sequence[ImportRecord], user_id: str) -> str:
        """
        Enqueue one lookup job for ``rows`` and record its initial status.

        Returns:
            The job id.

        Raises:
            JobQueueError: nothing was queued.
            JobStatusWriteError: the job was queued but has no status record.
        """
        if not rows:
            raise ValueError("Cannot dispatch an empty lookup job")

        payload = {
            "type": CSV_JOB_TYPE,
            "userId": user_id,
            "items": [row.model_dump(mode="json", by_alias=True) for row in rows],
        }

        job_id = self.queue.enqueue(payload)

        try:
            self.tracker.mark_queued(job_id)
        except StatusStoreError as e:
            logger.error(
                "Job queued but status record could not be written",
                extra={"extra_fields": {"job_id": job_id, "user_id": user_id}},
            )
            raise JobStatusWriteError("Failed to set job status", job_id=job_id) from e

        logger.info(
            f"Queued lookup job for {len(rows)} items",
            extra={"extra_fields": {"job_id": job_id, "user_id": user_id}},
        )
        return job_id
