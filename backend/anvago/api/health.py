"""
Health check routes.
Probes for load-balancer readiness and liveness.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
import time
import logging

from anvago.db.database import get_db
from anvago.db.repositories import LocationRepository
from anvago.core.rate_limiting import limiter, HEALTH_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

# Track startup time for uptime reporting
_STARTUP_TIME = time.time()


@router.get("/")
@limiter.limit(HEALTH_LIMIT)
async def health_check(request: Request, db: Session = Depends(get_db)):
    """Database connectivity, catalog size and uptime."""
    health = {
        "status": "healthy",
        "database": "available",
        "locations": 0,
        "uptimeSeconds": int(time.time() - _STARTUP_TIME),
        "timestamp": datetime.utcnow().isoformat(),
    }
    try:
        health["locations"] = LocationRepository(db).count()
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        health["status"] = "degraded"
        health["database"] = "unavailable"
    return {"success": True, "data": health}


@router.get("/ready")
@limiter.limit(HEALTH_LIMIT)
async def readiness_check(request: Request, db: Session = Depends(get_db)):
    """ready is true only when the database answers."""
    try:
        db.execute(text("SELECT 1"))
        ready = {"ready": True, "timestamp": datetime.utcnow().isoformat()}
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        ready = {"ready": False, "error": str(e)}
    return {"success": True, "data": ready}


@router.get("/live")
async def liveness_check():
    return {
        "success": True,
        "data": {"alive": True, "uptimeSeconds": int(time.time() - _STARTUP_TIME)},
    }
