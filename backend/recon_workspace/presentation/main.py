"""
Reconciliation Workspace FastAPI Application Factory
Main entrypoint with lifespan events, CORS, error mapping and router registration.
"""
from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.v1 import workspace
from .dependencies import get_document_store
from ..application.config import get_settings
from ..domain.exceptions import DocumentNotFoundError, WorkspaceError

logger = structlog.get_logger(__name__)


def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    settings = get_settings()
    logger.info("workspace_api_starting", version=settings.app_version, env=settings.app_env)

    store = app.dependency_overrides.get(get_document_store, get_document_store)()
    try:
        await store.ping()
        await store.ensure_indexes()
        logger.info("document_store_ready", backend=settings.document_store_backend)
    except Exception as e:
        # /health/ready reports it; the process still starts
        logger.error("document_store_unreachable", error=str(e))

    logger.info("workspace_api_ready", host=settings.api_host, port=settings.api_port)

    yield  # Application runs

    logger.info("workspace_api_shutting_down")
    store.close()


def register_exception_handlers(app: FastAPI) -> None:
    """Every failure leaves as {"success": false, "message": ...}."""

    @app.exception_handler(WorkspaceError)
    async def workspace_error_handler(request: Request, exc: WorkspaceError) -> JSONResponse:
        if isinstance(exc, DocumentNotFoundError):
            return _error(status.HTTP_404_NOT_FOUND, exc.message)
        logger.info("workspace_request_rejected", path=request.url.path, reason=exc.message)
        return _error(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid request: {', '.join(fields)}")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        # Store/driver details stay in the log, never in the response
        logger.error(
            "unhandled_request_error",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Procurement Reconciliation Workspace",
        description=(
            "Three-way match workspaces over extracted Purchase Orders, Invoices "
            "and Goods Receipt Notes, linked by business keys."
        ),
        version=settings.app_version,
        docs_url="/api/docs" if not settings.is_production else None,   # Disable Swagger in production
        redoc_url="/api/redoc" if not settings.is_production else None,
        openapi_url="/api/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )

    # ─── Middleware ─────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Request ID + timing middleware
    @app.middleware("http")
    async def request_id_and_timing(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        start = time.time()
        response = await call_next(request)
        elapsed = round((time.time() - start) * 1000, 2)
        response.headers["X-Process-Time-Ms"] = str(elapsed)
        response.headers["X-Request-ID"] = request_id
        if elapsed > 5000:  # Warn on slow requests
            logger.warning("slow_request", path=request.url.path, elapsed_ms=elapsed, request_id=request_id)
        return response

    # Security headers middleware
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    register_exception_handlers(app)

    # ─── Routers ─────────────────────────────────────────────────────────────
    app.include_router(workspace.router, prefix="/api/v1")   # /api/v1/workspace/*

    # ─── Health Endpoints ─────────────────────────────────────────────────────
    @app.get("/health/live", tags=["Health"], summary="Liveness check")
    async def liveness():
        """Returns 200 if the process is alive."""
        return {"status": "alive"}

    @app.get("/health/ready", tags=["Health"], summary="Readiness check")
    async def readiness(request: Request):
        """Returns 200 if the document store is reachable."""
        store = request.app.dependency_overrides.get(get_document_store, get_document_store)()
        checks = {}
        try:
            await store.ping()
            checks["document_store"] = "ok"
        except Exception as e:
            checks["document_store"] = f"error: {e}"

        all_ok = all(v == "ok" for v in checks.values())
        return JSONResponse(
            status_code=200 if all_ok else 503,
            content={"status": "ready" if all_ok else "degraded", "checks": checks}
        )

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "healthy", "service": settings.app_name, "version": settings.app_version,
                "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


app = create_app()
