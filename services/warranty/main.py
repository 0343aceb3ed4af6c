"""
Warranty Registry Service - Main Application
============================================

FastAPI application for warranty number issue, customer registration and
registration administration.

Version: 0.1.0
"""

from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.auth import require_admin
from shared.config import StorageBackend, settings
from shared.database import MongoDBClient
from shared.logging import bind_context, clear_context, get_logger, setup_logging
from shared.models.common import ErrorResponse, HealthResponse

from services.warranty.errors import PartialRegistrationFailure, WarrantyError
from services.warranty.routes import admin, auth, registration, registrations, warranty_numbers
from services.warranty.store import get_store
from services.warranty.sync import get_dispatcher

SERVICE_NAME = "warranty-registry"
VERSION = "0.1.0"

# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name=SERVICE_NAME,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "warranty_registry_starting",
        environment=settings.environment.value,
        port=settings.ports.warranty_registry,
        storage_backend=settings.warranty.storage_backend.value,
    )

    store = get_store()
    dispatcher = get_dispatcher()
    dispatcher.start()

    yield

    # Shutdown
    logger.info("warranty_registry_shutting_down")
    await dispatcher.stop()
    if store.backend == StorageBackend.MONGODB:
        await MongoDBClient.close()


# Create FastAPI application
app = FastAPI(
    title="Warranty Registry Service",
    description="Warranty number pool, customer registration and claims administration",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Tag every log line emitted while handling a request with its id."""
    request_id = request.headers.get("X-Request-ID") or uuid4().hex
    clear_context()
    bind_context(request_id=request_id, path=request.url.path)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Returns health status of the store and the marketing sync worker.
    """
    dispatcher = get_dispatcher()
    components: dict[str, dict[str, Any]] = {
        "store": await get_store().health_check(),
        "marketing_sync": {
            "status": "healthy",
            "running": dispatcher.running,
            "pending": dispatcher.pending,
            "clients": [c.name for c in dispatcher.active_clients],
        },
    }

    all_healthy = all(c.get("status") == "healthy" for c in components.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service=SERVICE_NAME,
        version=VERSION,
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Warranty Registry Service",
        "version": VERSION,
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    registration.router,
    prefix="/api/v1",
    tags=["Registration"],
)

app.include_router(
    auth.router,
    prefix="/api/v1/auth",
    tags=["Auth"],
)

_admin_only = [Depends(require_admin)]

app.include_router(
    warranty_numbers.router,
    prefix="/api/v1/admin/warranty-numbers",
    tags=["Warranty Numbers"],
    dependencies=_admin_only,
)

app.include_router(
    registrations.router,
    prefix="/api/v1/admin/registrations",
    tags=["Registrations"],
    dependencies=_admin_only,
)

app.include_router(
    admin.router,
    prefix="/api/v1/admin",
    tags=["Admin"],
    dependencies=_admin_only,
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(WarrantyError)
async def warranty_exception_handler(request: Request, exc: WarrantyError) -> JSONResponse:
    """Render domain errors as ErrorResponse."""
    if isinstance(exc, PartialRegistrationFailure):
        logger.error(
            "partial_registration_failure",
            registration_id=exc.registration_id,
            code=exc.code,
            reason=exc.reason,
            path=request.url.path,
        )
    else:
        logger.info(
            "warranty_error",
            error_code=exc.error_code,
            status_code=exc.status_code,
            path=request.url.path,
        )

    body = ErrorResponse(
        error=exc.message,
        error_code=exc.error_code,
        details=exc.details or None,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    body = ErrorResponse(error=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json"),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    body = ErrorResponse(error="Internal server error", error_code="internal_error")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(mode="json"),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.warranty.main:app",
        host="0.0.0.0",
        port=settings.ports.warranty_registry,
        reload=settings.debug,
    )
