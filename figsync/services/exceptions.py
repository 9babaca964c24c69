"""
Errors raised by the import pipeline.

Read failures from the database are not wrapped: SQLAlchemy errors raised
while matching catalog items, checking membership or resolving releases reach
the caller unchanged, since nothing has been written at that point.
"""


class SyncError(Exception):
    """Base class for import and dispatch failures."""


class CollectionWriteError(SyncError):
    """The collection/order insert failed and was rolled back."""


class DispatchError(SyncError):
    """Handing unknown items to the external lookup pipeline failed.

    ``inserted_count`` is filled in by the sync service so callers can report
    how many rows were saved before the dispatch step failed.
    """

    def __init__(self, message: str, job_id: str | None = None):
        super().__init__(message)
        self.job_id = job_id
        self.inserted_count = 0


class JobQueueError(DispatchError):
    """The lookup job could not be enqueued. Nothing was queued."""


class JobStatusWriteError(DispatchError):
    """The job was enqueued but its status record could not be written.

    ``job_id`` names the orphaned job.
    """


class StatusStoreError(SyncError):
    """The job status store could not be read or written."""


class JobNotFoundError(SyncError):
    """No status record exists for the job (expired or never created)."""

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id
