"""Map the service error taxonomy and request validation onto JSON responses."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from repoflow.services import (
    AuthenticationError,
    NotFoundError,
    RepositoryFetchFailed,
    RepositoryIngestionFailed,
    ServiceError,
    ValidationError,
)

log = structlog.get_logger("repoflow.api")

_STATUS_MAP: dict[type[ServiceError], int] = {
    NotFoundError: 404,
    ValidationError: 422,
    AuthenticationError: 401,
    RepositoryFetchFailed: 502,
    RepositoryIngestionFailed: 502,
}


def status_for(exc: ServiceError) -> int:
    """Status of the nearest mapped class in the exception's MRO, else 500."""
    return next((_STATUS_MAP[cls] for cls in type(exc).__mro__ if cls in _STATUS_MAP), 500)


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        log.warning("http.upstream_error", status=status, error=str(exc), path=request.url.path)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def _field_path(loc: tuple) -> str:
    # "body" / "path" prefixes say where, not which field
    parts = loc[1:] if len(loc) > 1 and loc[0] in ("body", "path", "query") else loc
    return ".".join(str(part) for part in parts)


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    detail = "; ".join(f"{_field_path(tuple(err['loc']))}: {err['msg']}" for err in exc.errors())
    return JSONResponse(status_code=422, content={"detail": detail})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, _service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
