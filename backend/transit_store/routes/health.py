"""
Transit Store Backend - Health Check Route
============================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Pings the database (SELECT 1) and the transit oracle (/v1/sys/health).

Status levels:
    healthy:   database and oracle reachable                     (HTTP 200)
    degraded:  database reachable, oracle not                    (HTTP 200)
    unhealthy: database unreachable or not yet initialized       (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request, Response

from transit_store import __version__
from transit_store.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    db_status = "connected"
    transit_status = "available"
    overall = "healthy"

    storage = getattr(request.app.state, "storage", None)
    if storage is None or not storage.is_ready:
        db_status = "disconnected"
        overall = "unhealthy"
    else:
        try:
            await storage.ping()
        except Exception as e:
            db_status = "disconnected"
            overall = "unhealthy"
            logger.warning("Health check: database unreachable: %s", str(e))

    transit = getattr(request.app.state, "transit", None)
    if transit is None or not await transit.health_check():
        transit_status = "unavailable"
        if overall != "unhealthy":
            overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        transit=transit_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
