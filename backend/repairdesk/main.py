"""
RepairDesk Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn repairdesk.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────┐             │
    │  │ Req ID   │→│ Logging  │→│ GZip │→│ CORS │             │
    │  └──────────┘ └──────────┘ └──────┘ └──────┘             │
    │                                                          │
    │  Routes:                                                 │
    │  ┌───────────────────────┐ ┌─────────────────────────┐   │
    │  │ POST /api/repair-     │ │ POST /send-confirmation-│   │
    │  │      requests         │ │      email              │   │
    │  ├───────────────────────┤ ├─────────────────────────┤   │
    │  │ GET /api/catalog/*    │ │ GET /storage/*  /health │   │
    │  └───────────────────────┘ └─────────────────────────┘   │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→400 │ NotFound→404 │ Upload→413/415/502/503  │
    │  Persist→500 │ anything else→500                         │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, never fatal)
    3. Create the local storage bucket directory
    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from repairdesk import __version__
from repairdesk.config import settings
from repairdesk.database import dispose_engine
from repairdesk.exceptions import (
    NotFoundError,
    PersistError,
    RepairDeskError,
    UploadError,
    ValidationError,
)
from repairdesk.middleware.cors import SelectiveCORSMiddleware
from repairdesk.middleware.logging import RequestLoggingMiddleware
from repairdesk.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from repairdesk.routes import catalog, files, health, notifications, repair_requests

logger = logging.getLogger(__name__)

UPLOAD_ERROR_STATUS = {
    "size_exceeded": 413,
    "unsupported_type": 415,
    "storage_not_configured": 503,
}


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    Request ids are not part of the format: the access log and the
    exception handlers put them in the message themselves.
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("RepairDesk Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: submissions still work without the email credential
        logger.error("Configuration error: %s", str(e))

    if settings.storage_backend == "local":
        bucket_root = Path(settings.storage_root) / settings.storage_bucket
        bucket_root.mkdir(parents=True, exist_ok=True)
        logger.info("Local storage bucket: %s", bucket_root.resolve())
    else:
        logger.info("Storage backend: %s (bucket %s)", settings.storage_backend, settings.storage_bucket)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("RepairDesk Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and one response format.

    Handler hierarchy:
        ValidationError     → 400 Bad Request
        NotFoundError       → 404 Not Found
        UploadError         → 413 / 415 / 503 by code, else 502
        PersistError        → 500 (generic message)
        RepairDeskError     → 500 (catch-all for custom)
        Exception           → 500 (unexpected)

    Context dicts are logged, never returned (except validation field maps).
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, sorted(exc.field_errors))
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": {"fields": exc.field_errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(UploadError)
    async def handle_upload_error(request: Request, exc: UploadError):
        rid = request_id_var.get("")
        logger.error("[%s] Upload error (%s): %s | Context: %s", rid, exc.code, exc.reason, exc.context)
        return JSONResponse(
            status_code=UPLOAD_ERROR_STATUS.get(exc.code, 502),
            content={
                "error": exc.code,
                "message": exc.reason,
                "request_id": rid,
            },
        )

    @app.exception_handler(PersistError)
    async def handle_persist_error(request: Request, exc: PersistError):
        rid = request_id_var.get("")
        logger.error("[%s] Persist error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "persist_failed",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(RepairDeskError)
    async def handle_repairdesk_error(request: Request, exc: RepairDeskError):
        rid = request_id_var.get("")
        logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Stack trace goes to the log only
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="RepairDesk API",
        description=(
            "Intake service for a mobile phone repair shop. Customers submit a repair "
            "request with an optional voice memo and photo; the request is stored and "
            "a confirmation email is sent."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition: RequestID → Logging → GZip → CORS
    app.add_middleware(
        SelectiveCORSMiddleware,
        exempt_paths=[notifications.CONFIRMATION_EMAIL_PATH],
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(repair_requests.router)
    app.include_router(catalog.router)
    app.include_router(notifications.router)
    app.include_router(files.router)
    app.include_router(health.router)

    return app


app = create_app()
