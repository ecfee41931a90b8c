"""System health endpoint."""

import logging
import time
from typing import Optional

import psutil
from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/system",
    tags=["System"]
)

# Process start, for uptime reporting
STARTED_AT = time.time()


class SystemHealth(BaseModel):
    """Model for system health data."""
    status: str
    uptime: float
    cpu_usage: float
    memory_usage: float
    disk_usage: float
    database_status: str
    push_connections: int
    database_error: Optional[str] = None


async def _database_status(pool) -> Optional[str]:
    """None if the database answers, else the error text."""
    try:
        async with pool.acquire() as conn:
            await conn.fetchval('SELECT 1')
        return None
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return str(e)


@router.get("/health")
async def get_system_health(request: Request):
    """Host metrics, database reachability and open push connections."""
    cpu_percent = psutil.cpu_percent()
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage('/')
    db_error = await _database_status(request.app.state.pool)

    if db_error:
        overall = "unhealthy"
    elif cpu_percent >= 80:
        overall = "degraded"
    else:
        overall = "healthy"

    health = SystemHealth(
        status=overall,
        uptime=round(time.time() - STARTED_AT, 1),
        cpu_usage=cpu_percent,
        memory_usage=memory.percent,
        disk_usage=disk.percent,
        database_status="disconnected" if db_error else "connected",
        push_connections=request.app.state.hub.connection_count(),
        database_error=db_error
    )
    return success_response(
        health,
        message="Server is running",
        status_code=503 if db_error else 200
    )


# Export the router
__all__ = ['router']
