from figsync.schemas.sync import (
    ImportRecord,
    JobStatusRecord,
    JobStatusResponse,
    SyncResponse,
)

__all__ = [
    "ImportRecord",
    "JobStatusRecord",
    "JobStatusResponse",
    "SyncResponse",
]
