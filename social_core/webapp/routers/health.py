"""
Health check endpoint.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from db.postgres_db import get_db_session
from utils.logger import get_logger
from ..responses import error_response, success_response

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/api/health")
async def health_check(request: Request):
    """Health check endpoint. Reports the store and the rate limiter backend."""
    limiter = request.app.state.rate_limiter
    try:
        with get_db_session() as session:
            session.execute(text("SELECT 1;"))
    except Exception as e:
        logger.warning(f"Health check could not reach the database: {e}")
        return error_response("UNKNOWN_ERROR", "Database unavailable", 503)
    return success_response({
        "status": "healthy",
        "service": "social-core",
        "rateLimitBackend": limiter.backend.name,
        "rateLimitEnabled": limiter.enabled,
    })
