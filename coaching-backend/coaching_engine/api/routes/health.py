"""
Health Check API Endpoint

Reports database reachability and, when configured, Redis reachability.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text

from coaching_engine.api.dependencies import CoachingServices, get_services
from coaching_engine.database import get_redis

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/coaching", tags=["health"])


async def _check_database(services: CoachingServices) -> str:
    try:
        async with services.slots.session_factory() as db:
            await db.execute(text("SELECT 1"))
        return "ok"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return "unavailable"


async def _check_redis() -> str:
    client = get_redis()
    if client is None:
        return "not_configured"
    try:
        await client.ping()
        return "ok"
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        return "unavailable"


@router.get("/health")
async def coaching_health(services: CoachingServices = Depends(get_services)) -> Dict[str, Any]:
    """
    Dependency health.

    status is "ok" when the database answers; Redis only carries
    notifications, so its outage degrades the service without failing it.
    """
    database = await _check_database(services)
    redis_status = await _check_redis()
    overall = "ok" if database == "ok" else "unavailable"
    if overall == "ok" and redis_status == "unavailable":
        overall = "degraded"

    return {
        "data": {
            "status": overall,
            "database": database,
            "redis": redis_status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    }
