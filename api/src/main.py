"""
FastAPI application entry point for the TravelBud API.

This module provides the main FastAPI application with:
- Account, profile and favourites routers
- Health and readiness endpoints
- Request/response logging with correlation IDs
- Prometheus metrics
- OpenTelemetry distributed tracing
- CORS, security headers, and rate limiting
- MongoDB client lifecycle management
"""

import structlog
import uvicorn
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Any

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from prometheus_client import CONTENT_TYPE_LATEST
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from api.src.config import get_settings, Settings
from api.src.dependencies import close_mongo, get_user_repository, init_mongo
from api.src.exceptions import TravelBudError
from api.src.repositories.user_repo import UserRepository
from api.src.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from api.src.rate_limit import limiter
from api.src.routers.accounts import accounts_router
from api.src.routers.profile import profile_router
from shared.logging import configure_logging
from shared.metrics import get_metrics_handler
from shared.models import HealthStatus
from shared.tracing import configure_tracing

# Initialize logger
logger = structlog.get_logger(__name__)

# Get settings
settings: Settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.log_format == "json",
    service_name="travelbud-api",
    environment=settings.environment
)

# ============================================================================
# Lifespan Management
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown events.

    Handles:
    - MongoDB client initialization and index creation
    - OpenTelemetry tracing setup
    - Graceful shutdown and resource cleanup
    """
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment
    )

    # ========================================================================
    # Startup: Initialize Resources
    # ========================================================================

    try:
        if settings.tracing_enabled:
            logger.info("initializing_tracing", otlp_endpoint=settings.tracing_otlp_endpoint)
            configure_tracing(
                service_name="travelbud-api",
                otlp_endpoint=settings.tracing_otlp_endpoint,
                sampling_rate=settings.tracing_sample_rate,
                service_version=settings.app_version
            )
            logger.info("tracing_initialized")

        await init_mongo(settings)

        logger.info(
            "application_started",
            app_name=settings.app_name,
            version=settings.app_version,
            environment=settings.environment
        )

        yield

    except Exception as e:
        logger.error("application_startup_failed", error=str(e), exc_info=True)
        raise

    # ========================================================================
    # Shutdown: Cleanup Resources
    # ========================================================================

    finally:
        logger.info("application_shutting_down")

        try:
            await close_mongo()

            if settings.tracing_enabled:
                logger.info("shutting_down_tracing")
                trace.get_tracer_provider().shutdown()

            logger.info("application_shutdown_complete")

        except Exception as e:
            logger.error("application_shutdown_failed", error=str(e), exc_info=True)

# ============================================================================
# FastAPI Application
# ============================================================================

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Account, profile and favourites sync API for the TravelBud client. "
        "All profile and favourites endpoints require a bearer token."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.debug,
)

app.state.limiter = limiter

# ============================================================================
# Middleware Configuration
# ============================================================================

# CORS Middleware
if settings.cors_enabled:
    logger.info("configuring_cors", origins=settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

# GZip Compression Middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# OpenTelemetry Instrumentation
if settings.tracing_enabled:
    FastAPIInstrumentor.instrument_app(app)

# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(TravelBudError)
async def travelbud_exception_handler(request: Request, exc: TravelBudError):
    """Render domain errors as ``{"error": message}``."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "request_rejected",
        path=request.url.path,
        status_code=exc.status_code,
        error_type=type(exc).__name__,
        error=exc.message
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message}
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are a 400 with a short message, never field dumps."""
    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request"}
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail}
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"}
    )

app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# Health and Readiness Endpoints
# ============================================================================

@app.get("/health", tags=["Health"], response_class=JSONResponse)
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns basic health status without checking dependencies.
    Use for container health checks.

    Returns:
        Health status
    """
    return {
        "status": HealthStatus.HEALTHY.value,
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment
    }

@app.get("/ready", tags=["Health"], response_class=JSONResponse)
async def readiness_check(
    user_repo: UserRepository = Depends(get_user_repository)
) -> JSONResponse:
    """
    Readiness check endpoint.

    Pings MongoDB through the users repository.

    Returns:
        Readiness status with component health
    """
    checks = {"database": HealthStatus.UNKNOWN.value}

    try:
        healthy = await user_repo.ping()
        checks["database"] = (HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY).value
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        checks["database"] = HealthStatus.UNHEALTHY.value

    all_healthy = all(value == HealthStatus.HEALTHY.value for value in checks.values())
    status_code = status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if all_healthy else "not_ready",
            "service": settings.app_name,
            "version": settings.app_version,
            "checks": checks
        }
    )

# ============================================================================
# Metrics Endpoint
# ============================================================================

_metrics_handler = get_metrics_handler()

@app.get("/metrics", tags=["Monitoring"], response_class=PlainTextResponse)
async def metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Returns:
        Prometheus metrics
    """
    if not settings.metrics_enabled:
        return Response(status_code=status.HTTP_404_NOT_FOUND)

    return Response(
        content=_metrics_handler(),
        media_type=CONTENT_TYPE_LATEST
    )

# ============================================================================
# API Router Registration
# ============================================================================

app.include_router(accounts_router)
app.include_router(profile_router)

# ============================================================================
# Application Entry Point
# ============================================================================

if __name__ == "__main__":
    logger.info(
        "starting_uvicorn_server",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )

    uvicorn.run(
        "api.src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
