from __future__ import annotations
from fastapi import APIRouter, Depends

from mgnrega_api.config import settings
from mgnrega_api.dependencies import get_store
from mgnrega_api.repositories.records import RecordStore
from mgnrega_api.schemas import HealthResponse

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse)
async def health(store: RecordStore = Depends(get_store)):
    db_ok = await store.ping()
    return HealthResponse(
        status="ok" if db_ok else "degraded",
        database="ok" if db_ok else "error",
        version=settings.APP_VERSION,
    )
