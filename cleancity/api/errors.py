"""Maps domain error kinds to HTTP responses."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import ORJSONResponse

from cleancity.services.errors import InvalidArgumentError, LifecycleError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> ORJSONResponse:
    body: dict = {"error": exc.kind, "detail": str(exc)}
    if isinstance(exc, InvalidArgumentError) and exc.details:
        body["details"] = {k: str(v) for k, v in exc.details.items()}
    logger.info(
        "api.domain_error",
        path=request.url.path,
        kind=exc.kind,
        status_code=exc.status_code,
    )
    return ORJSONResponse(status_code=exc.status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LifecycleError, lifecycle_error_handler)  # type: ignore[arg-type]
