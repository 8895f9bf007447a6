"""
FastAPI application entry point with health endpoints and order routing.

This module provides the main FastAPI application instance with CORS
configuration, rate limiting, request logging, health check endpoints and
global exception handling. Startup optionally creates the database tables;
shutdown disposes of the engine.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from marketplace.api.v1 import api_router
from marketplace.core.config import get_settings
from marketplace.core.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    log_performance,
    set_request_id,
)
from marketplace.database.connection import (
    check_database_health,
    close_database_connections,
    create_tables,
)
from marketplace.services.notifications.service import InMemoryNotificationStore

# Configure logging before application initialization
configure_logging()
logger = get_logger(__name__)

settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan context manager for startup and shutdown events.

    Args:
        app: FastAPI application instance

    Yields:
        None during application runtime
    """
    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        version=settings.app_version,
    )

    with log_performance(logger, "application_startup"):
        if settings.auto_create_tables:
            await create_tables()

    yield

    logger.info("Application shutting down")
    with log_performance(logger, "application_shutdown"):
        await close_database_connections()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Artisan marketplace order lifecycle API",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.debug,
)

app.state.notification_store = InMemoryNotificationStore(
    max_items=settings.notification_buffer_size
)

# Configure rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """
    Middleware for request logging and correlation ID management.

    Sets the request ID, logs the request and its timing, and clears the
    logging context afterwards.
    """
    request_id = set_request_id(request.headers.get("X-Request-ID"))

    logger.info(
        "Request received",
        method=request.method,
        path=request.url.path,
        client_host=request.client.host if request.client else None,
    )

    try:
        with log_performance(
            logger,
            "request_processing",
            method=request.method,
            path=request.url.path,
        ):
            response = await call_next(request)

        response.headers["X-Request-ID"] = request_id

        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        return response
    except Exception as e:
        logger.error(
            "Request failed",
            method=request.method,
            path=request.url.path,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        clear_context()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation errors with the request id."""
    logger.warning(
        "Request validation failed",
        method=request.method,
        path=request.url.path,
        errors=exc.errors(),
    )

    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation Error",
            "message": "Request validation failed",
            "details": jsonable_errors(exc),
            "request_id": get_request_id(),
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the raw input context, which may not serialize."""
    return [
        {
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with a generic error response.

    Internal details are logged, never returned.
    """
    logger.error(
        "Unhandled exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
            "request_id": get_request_id(),
        },
    )


@app.get("/health", tags=["Health"], summary="Health check endpoint")
async def health_check() -> dict[str, str]:
    """Always 200 while the process is serving requests."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/ready", tags=["Health"], summary="Readiness check endpoint")
async def readiness_check():
    """
    Readiness check for orchestration.

    Returns 503 when the database cannot be reached.
    """
    database_ready = await check_database_health()

    if not database_ready:
        logger.warning("Readiness check failed", database="unhealthy")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "service": settings.app_name,
                "dependencies_ready": False,
                "database": "unhealthy",
            },
        )

    return {
        "status": "ready",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "dependencies_ready": True,
        "database": "healthy",
    }


@app.get("/live", tags=["Health"], summary="Liveness check endpoint")
async def liveness_check() -> dict[str, str]:
    return {
        "status": "alive",
        "service": settings.app_name,
        "version": settings.app_version,
    }


app.include_router(api_router, prefix=settings.api_v1_prefix)
