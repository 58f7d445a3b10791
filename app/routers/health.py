# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + cache backend.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from app.database import get_db
from app.services.cache import ReadModelCache, get_cache
from app.config import settings
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db), cache: ReadModelCache = Depends(get_cache)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Cache backend reachability (Redis when enabled)
    """
    result = {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "cache": "redis" if settings.ENABLE_REDIS else "memory",
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except SQLAlchemyError as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    # Ping cache; a down cache only slows the dashboard
    if cache.backend.ping():
        result["cache_status"] = "ok"
    else:
        result["cache_status"] = "unreachable"
        result["status"] = "degraded"

    return result
