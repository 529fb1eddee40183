"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.exceptions import sanitize_error_message
from civicconnect.db.session import get_db

logger = logging.getLogger("api.health")
router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "healthy"}


@router.get("/db")
async def database_health(response: Response, db: AsyncSession = Depends(get_db)):
    """Check database connection health.

    Returns HTTP 503 if database is unavailable.
    """
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        response.status_code = 503
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": sanitize_error_message(str(e)),
        }
