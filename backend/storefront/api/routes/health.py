"""Health Routes — liveness and readiness probes for the container platform.

Invariants:
    - /health/ answers 200 whenever the process can serve a request
    - /health/ready answers 503 until the database answers a query

Design Decisions:
    - db_manager read from the module on each call: lifespan assigns it after import
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from storefront.infrastructure import database

SERVICE_NAME = "storefront-fulfillment-api"
SERVICE_VERSION = "1.0.0"

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/")
async def liveness():
    return {"status": "healthy", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@router.get("/ready")
async def readiness():
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": {"database": "unavailable"}},
        )
    return {"status": "ready", "checks": {"database": "healthy"}}
