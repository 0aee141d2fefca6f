"""Health check endpoints for monitoring application status."""

from datetime import datetime
from datetime import timezone

from fastapi import APIRouter
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

ROUTER_HEALTH = APIRouter(tags=["Health"])

SERVICE_NAME = "Upthrive Requests API"


@ROUTER_HEALTH.get(
    "/health",
    summary="Health check endpoint",
    description="Basic health check that returns application status and metadata",
    responses={
        status.HTTP_200_OK: {
            "description": "Application is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "timestamp": "2026-01-05T12:00:00.000000Z",
                        "service": SERVICE_NAME,
                        "version": "v1",
                        "environment": "dev",
                    }
                }
            },
        }
    },
)
async def health_check(request: Request):
    """
    Basic health check endpoint.

    Returns application status and metadata. This endpoint is lightweight
    and does not perform any external dependency checks.
    """
    settings = request.app.state.settings

    response_data = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "version": "v1",
        "environment": settings.environment,
    }

    logger.debug("Health check requested", status="healthy")

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=response_data,
    )


@ROUTER_HEALTH.get(
    "/health/live",
    summary="Liveness probe",
    responses={status.HTTP_200_OK: {"description": "Process is running"}},
)
async def liveness():
    """Liveness probe; only proves the event loop answers."""
    return JSONResponse(status_code=status.HTTP_200_OK, content={"status": "alive"})


@ROUTER_HEALTH.get(
    "/health/ready",
    summary="Readiness probe",
    description="Checks that the request database is configured and reachable",
    responses={
        status.HTTP_200_OK: {"description": "Ready to serve traffic"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Request database unavailable"},
    },
)
async def readiness(request: Request):
    """
    Readiness probe.

    Returns 503 while the request database is not configured or does not
    answer a trivial query.
    """
    db_pool = getattr(request.app.state, "domain_db_pool", None)
    timestamp = datetime.now(timezone.utc).isoformat()

    if db_pool is None:
        logger.warning("Readiness check failed: request database not configured")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "database": "not_configured", "timestamp": timestamp},
        )

    healthy = await db_pool.health_check()
    if not healthy:
        logger.warning("Readiness check failed: request database unreachable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "database": "unreachable", "timestamp": timestamp},
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "ready", "database": "ok", "timestamp": timestamp},
    )
