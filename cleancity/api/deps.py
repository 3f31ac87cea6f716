"""Shared FastAPI dependencies: service lookup and acting-user resolution.

Authentication happens upstream; by the time a request reaches this
service the caller's identity is carried in the ``X-Actor-Id`` header.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from cleancity.models.user import User
from cleancity.services.directory import ActorDirectory
from cleancity.services.errors import NotFoundError
from cleancity.services.lifecycle import ComplaintLifecycleEngine
from cleancity.services.stats import StatsAggregator

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_actor_header = APIKeyHeader(name="X-Actor-Id", auto_error=False)


def _service(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name} not available")
    return service


def get_directory(request: Request) -> ActorDirectory:
    return _service(request, "directory")


def get_engine(request: Request) -> ComplaintLifecycleEngine:
    return _service(request, "engine")


def get_stats(request: Request) -> StatsAggregator:
    return _service(request, "stats")


async def current_actor(
    request: Request,
    actor_id: str | None = Security(_actor_header),
) -> User:
    """Resolve the acting user; 401 when the header is missing or unknown."""
    if not actor_id:
        raise HTTPException(
            status_code=401,
            detail="Missing X-Actor-Id header.",
            headers={"WWW-Authenticate": "ActorId"},
        )
    directory = get_directory(request)
    try:
        return await directory.resolve(actor_id)
    except NotFoundError:
        logger.warning("auth.unknown_actor", path=request.url.path)
        raise HTTPException(status_code=401, detail="Unknown actor.") from None
