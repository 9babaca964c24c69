from fastapi import APIRouter

from figsync.api import sync

router = APIRouter()

router.include_router(sync.router, prefix="/sync", tags=["sync"])
