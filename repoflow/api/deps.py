"""Dependency injection — session, caller identity, and service singletons."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from repoflow.agent.llm_client import LLMClient
from repoflow.core.rate_limit import InMemoryRateLimiter
from repoflow.dao.project_dao import ProjectDAO
from repoflow.dao.repo_artifact_dao import RepoArtifactDAO
from repoflow.engines.diagrams.prompts import ARCHITECT_SYSTEM_PROMPT
from repoflow.engines.diagrams.runner import DiagramRunner
from repoflow.engines.diagrams.synthesizer import DiagramSynthesizer
from repoflow.engines.ingestion.fetcher import GitFetcher
from repoflow.engines.ingestion.orchestrator import IngestionOrchestrator
from repoflow.engines.persistence.adapter import ANONYMOUS, CallerIdentity, PersistenceAdapter
from repoflow.services import AuthenticationError
from repoflow.services.artifact_service import ArtifactService
from repoflow.services.auth_service import AuthService
from repoflow.services.project_service import ProjectService
from repoflow.storage.blob import LocalBlobStore

log = structlog.get_logger("repoflow.api")

# ---------------------------------------------------------------------------
# DAO singletons
# ---------------------------------------------------------------------------
_project_dao = ProjectDAO()
_artifact_dao = RepoArtifactDAO()

# ---------------------------------------------------------------------------
# Service / engine singletons
# ---------------------------------------------------------------------------
_auth_service = AuthService()
_project_service = ProjectService(_project_dao)
_artifact_service = ArtifactService(LocalBlobStore(), _artifact_dao)
_rate_limiter = InMemoryRateLimiter()
_synthesizer = DiagramSynthesizer(
    LLMClient(system_prompt=ARCHITECT_SYSTEM_PROMPT),
    rate_limiter=_rate_limiter,
)
_orchestrator = IngestionOrchestrator(GitFetcher(), _synthesizer)
_persistence_adapter = PersistenceAdapter(_project_service, _artifact_service)
_diagram_runner = DiagramRunner(_synthesizer, _project_service, _artifact_service)

# ---------------------------------------------------------------------------
# Engine / session factory (initialised by app lifespan)
# ---------------------------------------------------------------------------
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_session_factory(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Create the async engine and session factory. Called once at startup."""
    global _engine, _session_factory  # noqa: PLW0603
    url = database_url or os.environ.get(
        "REPOFLOW_DATABASE_URL", "postgresql+asyncpg://localhost/repoflow"
    )
    _engine = create_async_engine(url, pool_pre_ping=True, pool_recycle=1800)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _session_factory


async def dispose_engine() -> None:
    """Dispose the async engine, closing all pooled connections."""
    global _engine  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for code that manages its own transactions."""
    if _session_factory is None:
        raise RuntimeError("call init_session_factory() before handling requests")
    return _session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a per-request session with automatic commit/rollback."""
    if _session_factory is None:
        raise RuntimeError("call init_session_factory() before handling requests")
    async with _session_factory() as session:
        async with session.begin():
            yield session


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------

_bearer = HTTPBearer(auto_error=False)


async def get_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> CallerIdentity:
    """Signed-in caller for a valid Bearer token, anonymous otherwise."""
    if credentials is None or not _auth_service.enabled:
        return ANONYMOUS
    try:
        user_id = _auth_service.user_id_from_token(credentials.credentials)
    except AuthenticationError as exc:
        log.warning("auth.anonymous_fallback", reason=str(exc))
        return ANONYMOUS
    return CallerIdentity(user_id=user_id)


async def require_caller(caller: CallerIdentity = Depends(get_caller)) -> CallerIdentity:
    """Like :func:`get_caller` but rejects anonymous callers."""
    if not caller.signed_in:
        raise AuthenticationError("sign in required")
    return caller


# ---------------------------------------------------------------------------
# Service getters (for Depends())
# ---------------------------------------------------------------------------


def get_orchestrator() -> IngestionOrchestrator:
    return _orchestrator


def get_persistence_adapter() -> PersistenceAdapter:
    return _persistence_adapter


def get_artifact_service() -> ArtifactService:
    return _artifact_service


def get_project_service() -> ProjectService:
    return _project_service


def get_diagram_runner() -> DiagramRunner:
    return _diagram_runner
