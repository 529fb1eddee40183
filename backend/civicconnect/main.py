"""FastAPI application entry point."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from civicconnect.config import settings
from civicconnect.api.deps import build_collaborators
from civicconnect.api.v1.router import api_router, root_router
from civicconnect.db.session import create_tables, engine
from civicconnect.middleware import (
    SecurityHeadersMiddleware,
    RequestLoggingMiddleware,
    setup_logging,
)
from civicconnect.core.exceptions import register_exception_handlers


# Setup logging early
setup_logging()
logger = logging.getLogger(__name__)


def validate_startup_security() -> None:
    """
    Validate security configuration at startup.
    Exits with error in production if security requirements not met.
    """
    errors = settings.validate_production_settings()

    if errors:
        logger.error("=" * 60)
        logger.error("SECURITY CONFIGURATION ERRORS")
        logger.error("=" * 60)
        for error in errors:
            logger.error(f"  - {error}")
        logger.error("=" * 60)

        if settings.is_production():
            logger.critical("Refusing to start in production with insecure configuration!")
            sys.exit(1)
        else:
            logger.warning(
                "Running in development mode with insecure defaults. "
                "DO NOT use this configuration in production!"
            )

    logger.info(f"Environment: {settings.app_env}")
    logger.info(f"AI classification: {'configured' if settings.gemini_api_key else 'not configured'}")
    logger.info(f"Strict status transitions: {settings.strict_status_transitions}")
    logger.info(f"Debug Mode: {settings.debug}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    # Startup
    logger.info(f"Starting {settings.app_name}...")

    validate_startup_security()

    # Create database tables if they don't exist
    try:
        await create_tables()
        logger.info("Database connection established")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        if settings.is_production():
            sys.exit(1)

    app.state.collaborators = build_collaborators(settings)

    logger.info(f"{settings.app_name} started successfully")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await app.state.collaborators.close()
    await engine.dispose()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="""
Backend for the CivicConnect mobile app: citizens photograph civic problems,
submit them as reports, and follow them as municipal staff process them.

## Authentication

Obtain a token from `POST /api/login` and send it on every protected call:

```
Authorization: Bearer <token>
```

Tokens are valid for 7 days.

## Error Responses

All errors follow a consistent format:
```json
{
  "error": {
    "code": "ERROR_CODE",
    "message": "Human-readable message",
    "request_id": "abc123"
  }
}
```

Validation errors that reject a value from a fixed set also carry
`valid_values`.
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production() else None,
    redoc_url="/redoc" if not settings.is_production() else None,
    openapi_url="/openapi.json" if not settings.is_production() else None,
)

# ============================================================================
# Register Exception Handlers (before middleware)
# ============================================================================
register_exception_handlers(app)

# ============================================================================
# Middleware Stack (order matters - first added = last executed)
# ============================================================================

# 1. Request logging (outermost - captures everything)
app.add_middleware(RequestLoggingMiddleware)

# 2. Security headers
app.add_middleware(SecurityHeadersMiddleware)

# 3. CORS (innermost for preflight handling)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=settings.cors_allow_methods,  # Restricted, not ["*"]
    allow_headers=settings.cors_allow_headers,  # Restricted, not ["*"]
    expose_headers=["X-Request-ID"],
    max_age=600,  # Cache preflight for 10 minutes
)


# ============================================================================
# Routes
# ============================================================================

app.include_router(api_router, prefix="/api")
app.include_router(root_router)

# Uploaded photos; the directory may not exist until the first upload
app.mount("/media", StaticFiles(directory=settings.media_dir, check_dir=False), name="media")


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Basic health check endpoint.
    Returns service status without requiring authentication.
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint with API information.
    """
    response = {
        "name": settings.app_name,
        "version": "1.0.0",
        "health": "/health",
    }

    # Only include docs links in non-production
    if not settings.is_production():
        response["docs"] = "/docs"
        response["redoc"] = "/redoc"

    return response
