"""
Health check endpoints for monitoring application status.
File: backend/app/api/health.py
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..core.context import ServerContext
from .dependencies import get_server_context

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])

# Track application start time
start_time = time.time()


class LivenessResponse(BaseModel):
    """Liveness probe response model."""

    status: str
    timestamp: datetime
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    """Readiness probe response model."""

    status: str
    timestamp: datetime
    version: str
    environment: str
    server: Dict[str, Any]
    database: Dict[str, Any]


@router.get("/liveness", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Process is up; the database is not consulted."""
    return LivenessResponse(
        status="alive",
        timestamp=datetime.now(timezone.utc),
        uptime_seconds=round(time.time() - start_time, 3),
    )


@router.get("/readiness", response_model=ReadinessResponse)
async def readiness(context: ServerContext = Depends(get_server_context)) -> JSONResponse:
    """
    Ready once the database is connected and answers a ping.

    Returns 503 with the same body shape while it is not.
    """
    db_health = await context.database.health_check()
    ready = context.state.db_connected and db_health.get("healthy", False)

    if not ready:
        logger.warning(
            "Readiness check failed",
            extra={"extra_data": {"server": context.state.as_dict(), "database": db_health}},
        )

    body = ReadinessResponse(
        status="ready" if ready else "not_ready",
        timestamp=datetime.now(timezone.utc),
        version=context.settings.version,
        environment=context.settings.environment,
        server=context.state.as_dict(),
        database=db_health,
    )
    return JSONResponse(
        status_code=200 if ready else 503,
        content=body.model_dump(mode="json"),
    )


def register_health_routes(context: ServerContext) -> None:
    """Mount the ``/health`` probes on the context's app."""
    context.app.include_router(router)
