"""Request-context middleware.

Tags every request with an id (taken from ``X-Request-ID`` when the
caller supplies one), binds it into structlog's context variables so
that every log line emitted while serving the request carries it, and
logs one summary line per request.  Standard security headers are added
to all responses.
"""

from __future__ import annotations

import re
import time
from typing import Final
from uuid import uuid4

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"

# Caller-supplied ids are echoed back in headers and logs, so only plain
# tokens are accepted.
_REQUEST_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

_SECURITY_HEADERS: Final[dict[str, str]] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cache-Control": "no-store",
}


def resolve_request_id(supplied: str | None) -> str:
    """Return *supplied* if it is a safe token, else a fresh id."""
    if supplied and _REQUEST_ID_PATTERN.match(supplied):
        return supplied
    return uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request id, method and path into the logging context."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "api.request.failed",
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise

        logger.info(
            "api.request.completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        for header, value in _SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response
