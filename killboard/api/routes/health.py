"""Health check endpoint for monitoring and container orchestration."""

import time
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from loguru import logger

from killboard.core.config import Settings, get_settings
from killboard.core.constants import MILLISECONDS_PER_SECOND
from killboard.infrastructure.database.session import check_database_connection

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health(
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any]:
    """Report service status and database reachability.

    A failed database check reports ``degraded``; the endpoint itself
    always answers 200.
    """
    start_time = time.perf_counter()
    is_healthy, error_msg = await check_database_connection()
    latency_ms = round((time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND, 2)

    if not is_healthy:
        logger.warning("Database health check failed: {}", error_msg)

    return {
        "status": "healthy" if is_healthy else "degraded",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": settings.app_version,
        "checks": {
            "database": {
                "status": "ok" if is_healthy else "error",
                "latency_ms": latency_ms,
            }
        },
    }
