import structlog
import logging
import contextlib

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import HTTPException

from mgnrega_api.config import settings
from mgnrega_api.database import build_engine, build_sessionmaker, init_db, close_db
from mgnrega_api.exceptions import (
    AppError, app_error_handler, http_error_handler, unhandled_error_handler,
)
from mgnrega_api.middleware import LoggingMiddleware, SecurityHeadersMiddleware
from mgnrega_api.repositories.records import RecordStore
from mgnrega_api.routers.data import router as data_router
from mgnrega_api.routers.admin import router as admin_router
from mgnrega_api.services.district_data import DistrictDataService
from mgnrega_api.services.fetcher import GovDataClient

# ── Structured logging setup ──────────────────────────────────────────────────
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)
logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)

log = structlog.get_logger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("app.starting", env=settings.ENVIRONMENT, version=settings.APP_VERSION)
    engine = build_engine()
    await init_db(engine)
    store = RecordStore(build_sessionmaker(engine))
    gov_client = GovDataClient.from_settings(settings)

    app.state.store = store
    app.state.gov_client = gov_client
    app.state.district_service = DistrictDataService(store, gov_client, settings.STATE_NAME)
    log.info("app.ready", state_name=settings.STATE_NAME)
    yield
    log.info("app.shutting_down")
    await gov_client.aclose()
    await close_db(engine)
    log.info("app.stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

# ── Middleware (order matters — outermost first) ───────────────────────────────
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET"],
    allow_headers=["Content-Type"],
)

# ── Exception handlers ────────────────────────────────────────────────────────
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(data_router)
app.include_router(admin_router)


def run() -> None:
    uvicorn.run("mgnrega_api.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
