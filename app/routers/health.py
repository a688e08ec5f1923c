"""
Health Check Endpoints

- /health       - Simple status (is process running)
- /health/ready - Readiness check (is the database reachable), plus the
                  state of the external calendar feeds
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timezone
import time

from ..database import get_db
from ..config import settings

router = APIRouter(prefix="/health", tags=["Health"])

VERSION = "1.0.0"


def get_db_health(db: Session) -> dict:
    """Check database connectivity and latency"""
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000
        return {
            "status": "up",
            "latency_ms": round(latency_ms, 2),
            "type": db.bind.dialect.name,
        }
    except SQLAlchemyError as e:
        return {
            "status": "down",
            "error": str(e)[:100]
        }


def get_calendar_sync_health(db: Session) -> dict:
    """Feeds whose last sync failed; informational, never blocks readiness"""
    from ..domain import SyncStatus
    from ..services.availability_store import SqlAlchemyAvailabilityStore
    from ..services.exceptions import StoreError

    try:
        configs = SqlAlchemyAvailabilityStore(db).list_configs()
    except StoreError as e:
        return {"status": "unknown", "error": e.message}

    active = [c for c in configs if c.is_active]
    failing = [c.id for c in active if c.last_sync_status == SyncStatus.ERROR]
    return {
        "status": "degraded" if failing else "ok",
        "active_feeds": len(active),
        "failing_feeds": failing,
        "auto_sync": settings.auto_sync_enabled,
    }


@router.get("")
@router.get("/", include_in_schema=False)
async def simple_health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "environment": settings.environment,
    }


@router.get("/ready")
@router.get("/ready/", include_in_schema=False)
async def readiness_check(db: Session = Depends(get_db)):
    """
    Readiness probe - is the service ready to accept traffic?
    Checks database connectivity.
    """
    db_health = get_db_health(db)

    if db_health["status"] == "up":
        return {
            "status": "ready",
            "database": db_health,
            "calendar_sync": get_calendar_sync_health(db),
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={
            "status": "not_ready",
            "reason": "database_unavailable",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )
