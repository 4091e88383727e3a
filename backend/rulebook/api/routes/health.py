"""Health & Readiness Checks — is the process up, and can it commit mutations?

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 only when the SQL database in use is unreachable
    - Readiness names the configured store and audit backends

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load balancer
    - Memory backends have no database: "not_configured" counts as ready
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from rulebook.config import get_settings
from rulebook.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "rulebook-api"
SERVICE_VERSION = "1.0.0"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Liveness check."""
    return {"status": "healthy", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@router.get("/ready")
async def readiness_check():
    settings = get_settings()
    checks = {"store": settings.store_backend, "audit": settings.audit_backend}
    if database.db_manager is None:
        return {"status": "ready", "checks": {**checks, "database": "not_configured"}}
    if not await database.db_manager.health_check():
        logger.warning("Readiness check failed: database unavailable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
                "checks": {**checks, "database": "unreachable"},
            },
        )
    return {"status": "ready", "checks": {**checks, "database": "healthy"}}
