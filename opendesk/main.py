"""Main FastAPI application."""

import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from . import __version__
from .api import admin_router, auth_router, documents_router, drive_router
from .core.config import ConfigurationError, settings
from .core.logging_config import setup_logging
from .database import DATABASE_URL, SessionLocal, get_db, init_schema
from .exceptions import OpenDeskError, StorageError
from .middleware.exception_handler import opendesk_exception_handler
from .middleware.request_context import RequestContextMiddleware
from .services.storage_service import get_storage
from .services.trash_service import purge_expired_trash

setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)


def _mask_url(url: str) -> str:
    """Mask the password in a database URL for logging."""
    return re.sub(r'://([^:]+):([^@]+)@', r'://\1:***@', url)


logger.info("Using database", extra={"database_url": _mask_url(DATABASE_URL)})
init_schema()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup checks, bucket bootstrap and an initial trash sweep."""
    logger.info(f"Environment: {settings.environment.value}")
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical(f"STARTUP BLOCKED: {e}")
        raise SystemExit(1) from e

    for problem in settings.insecure_defaults():
        logger.warning(f"SECURITY: {problem}")

    # Resolved like a route dependency so overrides apply.
    storage = app.dependency_overrides.get(get_storage, get_storage)()
    try:
        storage.ensure_bucket()
    except StorageError as e:
        logger.warning(f"Object store unavailable at startup (non-fatal): {e.details}")

    db = SessionLocal()
    try:
        purge_expired_trash(db, storage, settings.trash_retention_days)
    except Exception as e:
        logger.warning(f"Trash purge failed (non-fatal): {e}")
    finally:
        db.close()

    yield


app = FastAPI(
    title="OpenDesk API",
    description=(
        "REST API for OpenDesk: rich-text documents, a folder/file drive backed "
        "by an S3-compatible object store, and document export to Markdown, DOCX "
        "and PDF.\n\n"
        "**Authentication:** every drive and document endpoint requires a "
        "`Bearer` token obtained from `POST /auth/login`."
    ),
    version=__version__,
    lifespan=lifespan,
    # /docs is the documents resource.
    docs_url="/swagger",
    redoc_url=None,
)

# Middleware stack (outermost first: CORS wraps request context).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(OpenDeskError, opendesk_exception_handler)

app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(drive_router)
app.include_router(documents_router)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "OpenDesk API",
        "version": __version__,
        "status": "running",
    }


_startup_time = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Database status and uptime.

    Never raises; a database failure is reported as ``degraded`` so load
    balancers still get a 200 to inspect.
    """
    db_status = "ok"
    try:
        db.execute(text("SELECT 1"))
    except Exception:
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "uptime_seconds": round(time.monotonic() - _startup_time),
        "version": __version__,
    }
