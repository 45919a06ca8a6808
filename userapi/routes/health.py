"""
Users API — Health Check Route
===============================

What:  Health check endpoint polled by Docker and load balancers.
How:   Sends a `ping` command to MongoDB, bounded by HEALTH_CHECK_TIMEOUT,
       and makes sure the unique email index exists.

Status levels:
    - healthy:   MongoDB answered and the email index exists (HTTP 200)
    - unhealthy: MongoDB unreachable or slow, or the index could not be
                 created (HTTP 503, stop routing traffic)
"""

import asyncio
import logging
import time

from fastapi import APIRouter, Request, Response
from pymongo.errors import PyMongoError

from userapi import __version__
from userapi.database import ping
from userapi.exceptions import StorageError
from userapi.schemas.user import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Module-level: set once when the module loads
_start_time = time.time()


async def _database_status(request: Request) -> str:
    # Absent until the lifespan has run
    client = getattr(request.app.state, "mongo_client", None)
    if client is None:
        logger.warning("Health check: MongoDB client not initialized")
        return "disconnected"

    timeout = request.app.state.settings.health_check_timeout
    try:
        await ping(client, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Health check: database did not answer within %.1fs", timeout)
        return "disconnected"
    except PyMongoError as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        return "disconnected"

    email_index = getattr(request.app.state, "email_index", None)
    if email_index is not None:
        try:
            await email_index.ensure()
        except StorageError:
            return "index_missing"
    return "connected"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    """
    Check the service and its database.

    Why ping: it is the cheapest round trip that proves the client can reach
    a server and authenticate. A reachable server without the unique email
    index is still unhealthy, since creates could then store duplicates.
    """
    db_status = await _database_status(request)

    overall = "healthy" if db_status == "connected" else "unhealthy"
    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
