from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.exc import SQLAlchemyError

from figsync.api.deps import enforce_sync_rate_limit, get_current_user_id, get_sync_service
from figsync.core.config import get_settings
from figsync.core.logging import get_logger
from figsync.schemas.sync import ImportRecord, JobStatusResponse, SyncResponse
from figsync.services.csv_parser import parse_collection_csv
from figsync.services.exceptions import (
    CollectionWriteError,
    JobNotFoundError,
    JobQueueError,
    JobStatusWriteError,
    StatusStoreError,
)
from figsync.services.sync_service import SyncService

router = APIRouter()
logger = get_logger(__name__)


def _run_sync(service: SyncService, records: list[ImportRecord], user_id: str) -> SyncResponse:
    settings = get_settings()

    if not records:
        raise HTTPException(status_code=400, detail="No items to sync")
    if len(records) > settings.MAX_IMPORT_ROWS:
        raise HTTPException(
            status_code=413,
            detail=f"Too many items. Maximum is {settings.MAX_IMPORT_ROWS} per import",
        )

    try:
        result = service.reconcile_and_dispatch(records, user_id)
    except SQLAlchemyError as e:
        logger.error(
            "Error while reconciling import batch",
            extra={"extra_fields": {"user_id": user_id, "error": str(e)}},
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail="Failed to process sync request") from e
    except CollectionWriteError as e:
        raise HTTPException(
            status_code=500, detail="Failed to insert to collection and orders"
        ) from e
    except JobQueueError as e:
        raise HTTPException(
            status_code=500,
            detail=f"{e.inserted_count} items saved, but new-item lookup could not be queued",
        ) from e
    except JobStatusWriteError as e:
        raise HTTPException(status_code=500, detail="Failed to set job status") from e

    return SyncResponse(
        status=result.status,
        is_finished=result.is_finished,
        existing_items_to_insert=result.inserted_count,
        new_items=len(result.external_lookup_ids),
        job_id=result.job_id,
    )


@router.post(
    "/csv",
    response_model=SyncResponse,
    dependencies=[Depends(enforce_sync_rate_limit)],
)
async def sync_csv_items(
    records: list[ImportRecord],
    user_id: str = Depends(get_current_user_id),
    service: SyncService = Depends(get_sync_service),
):
    """
    Import collection rows that the client already parsed from an export.

    Items already in the catalog are added to the collection right away.
    Unknown items are queued for lookup; poll `/job-status` with the returned
    `job_id` to follow them.
    """
    return _run_sync(service, records, user_id)


@router.post(
    "/csv/upload",
    response_model=SyncResponse,
    dependencies=[Depends(enforce_sync_rate_limit)],
)
async def sync_csv_file(
    file: UploadFile = File(..., description="Collection export CSV"),
    user_id: str = Depends(get_current_user_id),
    service: SyncService = Depends(get_sync_service),
):
    """Import a collection export CSV file."""
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="File must be a CSV file")

    max_size = get_settings().MAX_UPLOAD_SIZE
    content = await file.read()
    if len(content) > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {max_size // (1024 * 1024)}MB",
        )

    records, errors, warnings = parse_collection_csv(content)
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))
    if warnings:
        logger.warning(
            f"Skipped {len(warnings)} rows while parsing collection export",
            extra={"extra_fields": {"user_id": user_id, "warnings": warnings[:20]}},
        )

    return _run_sync(service, records, user_id)


@router.get("/job-status", response_model=JobStatusResponse)
async def get_job_status(
    job_id: str = Query(..., alias="jobId", min_length=1),
    user_id: str = Depends(get_current_user_id),
    service: SyncService = Depends(get_sync_service),
):
    """Check the status of an external lookup job."""
    try:
        record = service.get_job_status(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found") from None
    except StatusStoreError as e:
        logger.error(
            "Error fetching job status",
            extra={"extra_fields": {"job_id": job_id, "user_id": user_id, "error": str(e)}},
        )
        raise HTTPException(status_code=500, detail="Error fetching job status") from e

    return JobStatusResponse(
        status=record.status,
        finished=record.finished,
        created_at=record.created_at,
    )
