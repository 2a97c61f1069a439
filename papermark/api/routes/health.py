"""Health Routes — liveness and readiness probes for the API process.

Invariants:
    - Liveness never touches the database
    - Readiness answers 503 with the failing check when the database ping fails
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

import papermark.infrastructure.database as db_module
from papermark import __version__

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/")
async def liveness():
    return {"status": "healthy", "service": "papermark-api", "version": __version__}


@router.get("/ready")
async def readiness():
    manager = db_module.db_manager
    latency_ms = await manager.ping() if manager is not None else None
    if latency_ms is None:
        logger.warning("Readiness check failed", extra={"event": "not_ready"})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": {"database": "unreachable"}},
        )
    return {
        "status": "ready",
        "checks": {"database": "healthy"},
        "database_latency_ms": latency_ms,
    }
