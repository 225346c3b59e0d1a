"""
ContentForge - SEO Content Studio
Main FastAPI Application
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
import time
import logging

from contentforge.core.config import settings
from contentforge.api.v1 import api_router
from contentforge.domains.project.infrastructure.gateway import (
    ConnectionSettingsStore,
    PersistenceGateway,
    resolve_startup_config,
)
from contentforge.infrastructure.di.providers import default_backend_config, get_configured_container
from contentforge.infrastructure.di.container import Container
from contentforge.infrastructure.observability import (
    ObservabilityMiddleware,
    METRICS_CONTENT_TYPE,
    render_metrics,
    configure_logging,
    configure_structlog,
)
from contentforge.services.orchestrator import GenerationOrchestrator
from contentforge.shared_kernel.exceptions import (
    ConfigurationError,
    DomainException,
    EntityNotFoundError,
    ExternalServiceError,
    InvalidTransitionError,
    PersistenceError,
    ValidationError,
)

# Configure logging
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

if settings.STRUCTURED_LOGGING_ENABLED:
    configure_structlog()

# Configure rate limiter
limiter = Limiter(key_func=get_remote_address, default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"])

# Most specific first
ERROR_STATUS = (
    (InvalidTransitionError, 409),
    (ValidationError, 422),
    (EntityNotFoundError, 404),
    (ExternalServiceError, 502),
    (PersistenceError, 503),
    (ConfigurationError, 400),
)


def status_for(exc: DomainException) -> int:
    for exc_type, status_code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info(f"Environment: {settings.APP_ENV}")

    container = get_configured_container()
    app.state.container = container

    stored = await container.resolve(ConnectionSettingsStore).load()
    gateway = container.resolve(PersistenceGateway)
    gateway.configure(resolve_startup_config(stored, default_backend_config(settings)))
    result = await container.resolve(GenerationOrchestrator).reload()
    if result.is_success:
        logger.info(f"Workspace ready with {len(result.value)} projects ({gateway.backend_name} backend)")

    yield

    await container.aclose()
    Container.reset()
    logger.info(f"Shutting down {settings.PROJECT_NAME}")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="SEO Content Studio",
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    openapi_url="/api/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Add rate limiter state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.OBSERVABILITY_ENABLED:
    app.add_middleware(ObservabilityMiddleware)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


# Exception handlers
@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException):
    """Map domain failures to HTTP responses"""
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=True,
        extra={
            "method": request.method,
            "url": str(request.url),
            "client_host": request.client.host if request.client else None,
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "An internal error occurred",
            "code": "INTERNAL_ERROR",
            "error": str(exc) if settings.DEBUG else None,
            "type": type(exc).__name__ if settings.DEBUG else None
        }
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "environment": settings.APP_ENV
    }


if settings.METRICS_ENABLED:
    @app.get(settings.METRICS_PATH, tags=["Metrics"])
    async def metrics():
        return Response(content=render_metrics(), media_type=METRICS_CONTENT_TYPE)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "message": "ContentForge API - SEO Content Studio",
        "version": settings.VERSION,
        "docs": "/api/docs" if settings.DEBUG else None
    }


# Include API router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "contentforge.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
