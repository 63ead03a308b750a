"""
BeeBark Backend — Health Check Route
======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database with SELECT 1, reports whether the media host is
       configured and how many users hold a live socket channel.

Status levels:
    - healthy:   database reachable and media host configured
    - degraded:  media host unconfigured (posts with images will fail)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from app import __version__
from app.config import settings
from app.database import engine
from app.schemas.common import HealthResponse
from app.services.presence import presence_registry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    media_status = "configured" if settings.media_host_configured else "unconfigured"
    if media_status == "unconfigured" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        media_host=media_status,
        connected_users=presence_registry.count(),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
