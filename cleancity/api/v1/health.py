"""Health check endpoints for the CleanCity API v1."""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, str]


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.

    Returns 200 if the application process is running and able to
    handle requests.
    """
    start_time: float = getattr(request.app.state, "start_time", time.time())
    uptime = time.time() - start_time

    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(uptime, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Readiness probe: every core service must be wired onto ``app.state``."""
    checks = {
        name: "ok" if getattr(request.app.state, name, None) is not None else "not_initialised"
        for name in ("directory", "repository", "storage", "engine", "stats")
    }
    status = "ready" if all(v == "ok" for v in checks.values()) else "degraded"
    logger.info("health.readiness_check", status=status)
    return ReadinessResponse(status=status, checks=checks)
