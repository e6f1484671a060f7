from __future__ import annotations
from typing import Any, Dict, Optional

import structlog
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

log = structlog.get_logger(__name__)


# ── Typed domain exceptions ───────────────────────────────────────────────────

class AppError(Exception):
    """Base for all application-level errors."""
    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, detail: str, context: Optional[Dict[str, Any]] = None):
        self.detail = detail
        self.context = context or {}
        super().__init__(detail)


class InvalidInputError(AppError):
    status_code = 400
    error_code = "INVALID_INPUT"


class NotFoundError(AppError):
    status_code = 404
    error_code = "NOT_FOUND"


class RemoteUnavailableError(AppError):
    status_code = 502
    error_code = "UPSTREAM_FETCH_FAILED"


class StorageError(AppError):
    status_code = 500
    error_code = "STORAGE_ERROR"


# ── FastAPI exception handlers ────────────────────────────────────────────────

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "detail": exc.detail,
            "context": exc.context,
        },
    )


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTP_ERROR",
            "detail": exc.detail,
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("http.unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "detail": "Internal server error",
        },
    )
