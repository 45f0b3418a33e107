"""
Health check endpoints
"""
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from lib.db import Database, ProbeResult
from lib.prometheus_metrics import health_check_status, update_pool_gauges, update_uptime

router = APIRouter(tags=["ops"])

NOT_CONFIGURED = "Database pool is not configured"


def get_db(request: Request) -> Optional[Database]:
    """Pool injected at startup; None when configuration failed"""
    return getattr(request.app.state, "db", None)


@router.get("/")
async def liveness():
    """Process liveness - never touches the pool"""
    health_check_status.labels(check_type="api").set(1)
    return {
        "message": "Hospital Management System Backend is running.",
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/db")
async def database_health(request: Request, db: Optional[Database] = Depends(get_db)):
    """
    Database health check
    Returns: {"database": "connected"} with 200, or 500 with the failure reason
    """
    if db is None:
        reason = getattr(request.app.state, "db_error", None) or NOT_CONFIGURED
        result = ProbeResult(False, reason)
    else:
        result = await db.probe()

    connected, reason = result
    health_check_status.labels(check_type="database").set(1 if connected else 0)
    if connected:
        return {"database": "connected"}
    return JSONResponse(
        status_code=500,
        content={"database": "disconnected", "error": reason},
    )


@router.get("/metrics", response_class=Response)
async def metrics(db: Optional[Database] = Depends(get_db)):
    """Prometheus-compatible metrics endpoint"""
    if db is not None:
        update_pool_gauges(db.stats())
    update_uptime()
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
