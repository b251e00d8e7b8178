"""Health checks: liveness and database-aware readiness.

Invariants:
    - GET /health/ is 200 whenever the process is serving
    - GET /health/ready is 503 only when the database is unhealthy; a slow or
      timed-out readiness check reports "degraded" with 200
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from hive.core.domain_types import utcnow
from hive.infrastructure import database as db_module

SERVICE = "hive-api"
VERSION = "1.0.0"

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": SERVICE, "version": VERSION}


@router.get("/ready")
async def readiness_check():
    manager = db_module.db_manager
    if manager is None:
        db = {"status": "unhealthy", "latency_ms": 0, "error": "Database not initialized"}
    else:
        db = (await manager.readiness()).to_dict()

    body = {
        "status": db["status"],
        "timestamp": utcnow().isoformat(),
        "version": VERSION,
        "checks": {"database": db["status"]},
        "services": {"database": db},
    }
    code = status.HTTP_503_SERVICE_UNAVAILABLE if db["status"] == "unhealthy" else status.HTTP_200_OK
    return JSONResponse(status_code=code, content=body)
