"""repoflow HTTP service.

Run with ``repoflow-api`` or ``uvicorn --factory repoflow.api:create_app``.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from repoflow import __version__
from repoflow.api.deps import dispose_engine, init_session_factory
from repoflow.api.errors import register_error_handlers
from repoflow.api.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from repoflow.api.routers import projects
from repoflow.core.logging import setup_logging

API_PREFIX = "/api/v1"


def _lifespan_for(
    database_url: str | None,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        # engine creation is lazy; no connection until the first signed-in write
        init_session_factory(database_url)
        yield
        await dispose_engine()

    return lifespan


def _cors_origins(raw: str | None) -> list[str]:
    if raw is None:
        raw = os.environ.get("REPOFLOW_CORS_ORIGINS", "http://localhost:3000")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app(*, database_url: str | None = None, cors_origins: str | None = None) -> FastAPI:
    """Build the application. Arguments override ``REPOFLOW_DATABASE_URL`` / ``REPOFLOW_CORS_ORIGINS``."""
    setup_logging()

    app = FastAPI(
        title="repoflow",
        version=__version__,
        docs_url=f"{API_PREFIX}/docs",
        openapi_url=f"{API_PREFIX}/openapi.json",
        lifespan=_lifespan_for(database_url),
    )
    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    app.include_router(projects.router, prefix=f"{API_PREFIX}/projects", tags=["projects"])
    return app


def run() -> None:
    """Serve the API with uvicorn on ``REPOFLOW_HOST``:``REPOFLOW_PORT``."""
    import uvicorn

    uvicorn.run(
        create_app(),
        host=os.environ.get("REPOFLOW_HOST", "127.0.0.1"),
        port=int(os.environ.get("REPOFLOW_PORT", "8000")),
        log_config=None,
    )
