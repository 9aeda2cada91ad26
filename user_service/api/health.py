"""Health check endpoints"""
import time
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from user_service.cache import KeyValueStore, get_cache
from user_service.database import get_db
from user_service.utils.logger import logger

router = APIRouter(prefix="/health", tags=["health"])

SERVICE_NAME = "user-service"
VERSION = "1.0.0"

# Track startup time
STARTUP_TIME = time.time()


@router.get("")
def health_check():
    """
    Basic health check endpoint

    Returns 200 if service is running
    """
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/ready")
def readiness_check(
    db: Session = Depends(get_db),
    cache: KeyValueStore = Depends(get_cache),
):
    """
    Readiness check - verifies both stores answer

    Returns 200 if ready to serve traffic, 503 if not ready
    """
    checks: Dict[str, Any] = {
        "database": False,
        "database_latency_ms": None,
        "cache": False,
    }

    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        checks["database"] = True
        checks["database_latency_ms"] = round((time.time() - start) * 1000, 2)
    except Exception:
        logger.error("Readiness check: database unavailable", exc_info=True)

    try:
        checks["cache"] = cache.ping()
    except Exception:
        logger.error("Readiness check: cache unavailable", exc_info=True)

    if not (checks["database"] and checks["cache"]):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "checks": checks},
        )

    return {
        "status": "ready",
        "checks": checks,
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/live")
def liveness_check():
    """
    Liveness check - verifies service is alive

    Used by Kubernetes liveness probe
    """
    return {
        "status": "alive",
        "uptime_seconds": round(time.time() - STARTUP_TIME, 2),
        "timestamp": datetime.utcnow().isoformat()
    }
