"""
Dogsfy Backend — Health Check Route
=====================================

What:  Reports whether each partition database is reachable.
How:   Pings the north, south and friends partitions concurrently.

Status levels:
    healthy:   all three partitions reachable (HTTP 200)
    degraded:  exactly one user partition down; users of the other
               hemisphere are still served (HTTP 200)
    unhealthy: the friends partition or both user partitions down (HTTP 503)
"""

import asyncio
import logging
import time

from fastapi import APIRouter, Request, Response

from dogsfy import __version__
from dogsfy.schemas.user import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()

PARTITION_NAMES = ("north", "south", "friends")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Returns the connectivity of every partition database.",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    registry = request.app.state.partitions
    reachable = await asyncio.gather(*(store.ping() for store in registry))
    partitions = {
        name: "connected" if ok else "disconnected"
        for name, ok in zip(PARTITION_NAMES, reachable)
    }

    north_ok, south_ok, friends_ok = reachable
    if all(reachable):
        overall = "healthy"
    elif friends_ok and (north_ok or south_ok):
        overall = "degraded"
    else:
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: %s", partitions)

    return HealthResponse(
        status=overall,
        version=__version__,
        partitions=partitions,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
