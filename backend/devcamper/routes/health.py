"""
DevCamper Backend — Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database (SELECT 1) and the geocoder (circuit breaker state,
       then a lightweight provider probe) and reports an aggregate status.

Status levels:
    - healthy:   All dependencies operational
    - degraded:  Geocoder down; listing and lookups still work, creating
                 bootcamps and radius search do not
    - unhealthy: Database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from devcamper import __version__
from devcamper.database import engine
from devcamper.schemas.common import HealthResponse
from devcamper.services.geocoder_service import CircuitBreaker, geocoder_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Returns the health status of the API and its dependencies.",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    geocoder_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Geocoder ────────────────────────────────────────────────────
    if geocoder_service.circuit_breaker.state == CircuitBreaker.OPEN:
        geocoder_status = "circuit_open"
    elif not await geocoder_service.health_check():
        geocoder_status = "unavailable"
    if geocoder_status != "available" and overall != "unhealthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        geocoder=geocoder_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
