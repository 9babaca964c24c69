from fastapi import Depends, Header, HTTPException, Response
from sqlalchemy.orm import Session

from figsync.core.config import get_settings
from figsync.core.database import get_db
from figsync.core.logging import user_id_var
from figsync.core.rate_limit import RateLimitResult, SyncRateLimiter
from figsync.services.jobs import JobDispatcher, JobQueue, JobStatusTracker, StatusStore
from figsync.services.queue_backends import RedisJobQueue, RedisStatusStore, get_redis_client
from figsync.services.sync_service import SyncService


async def get_current_user_id(x_user_id: str | None = Header(None)) -> str:
    """Identify the acting user.

    The session layer in front of this service resolves the login and
    forwards the user id in ``X-User-Id``.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    user_id = x_user_id.strip()
    user_id_var.set(user_id)
    return user_id


def get_job_queue() -> JobQueue:
    return RedisJobQueue(get_redis_client(), get_settings().SYNC_QUEUE_NAME)


def get_status_store() -> StatusStore:
    return RedisStatusStore(get_redis_client())


def get_rate_limiter() -> SyncRateLimiter:
    settings = get_settings()
    return SyncRateLimiter(
        get_redis_client(),
        max_requests=settings.SYNC_RATE_LIMIT_REQUESTS,
        window_seconds=settings.SYNC_RATE_LIMIT_WINDOW_SECONDS,
    )


def _rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
    }


def enforce_sync_rate_limit(
    response: Response,
    user_id: str = Depends(get_current_user_id),
    limiter: SyncRateLimiter = Depends(get_rate_limiter),
) -> None:
    """Reject the request with 429 once the user has used up the window."""
    result = limiter.hit(user_id)
    headers = _rate_limit_headers(result)

    if not result.allowed:
        headers["Retry-After"] = str(result.retry_after)
        raise HTTPException(
            status_code=429,
            detail=f"Too many sync requests. Please try again in {result.retry_after} seconds.",
            headers=headers,
        )

    for name, value in headers.items():
        response.headers[name] = value


def get_status_tracker(store: StatusStore = Depends(get_status_store)) -> JobStatusTracker:
    settings = get_settings()
    return JobStatusTracker(
        store,
        ttl_seconds=settings.JOB_STATUS_TTL_SECONDS,
        completed_ttl_seconds=settings.JOB_COMPLETED_STATUS_TTL_SECONDS,
    )


def get_sync_service(
    db: Session = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
    tracker: JobStatusTracker = Depends(get_status_tracker),
) -> SyncService:
    return SyncService(
        db,
        JobDispatcher(queue, tracker),
        tracker,
        source=get_settings().CATALOG_SOURCE,
    )
