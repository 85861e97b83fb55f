"""Request ID middleware — every request gets an ``X-Request-ID`` bound into the log context."""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

log = structlog.get_logger("repoflow.api")

REQUEST_ID_HEADER = "X-Request-ID"


def request_id_from(raw: str) -> str:
    """Reuse a client-supplied UUID, otherwise mint a new one."""
    try:
        return str(uuid.UUID(raw))
    except (ValueError, AttributeError, TypeError):
        return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request_id_from(request.headers.get(REQUEST_ID_HEADER, ""))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception("http.failed", method=request.method, elapsed_ms=_elapsed(start))
            raise

        log.info(
            "http.request",
            method=request.method,
            status=response.status_code,
            elapsed_ms=_elapsed(start),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _elapsed(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)
