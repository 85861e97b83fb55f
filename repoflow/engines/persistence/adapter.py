"""Dual persistence — durable records for signed-in callers, inline results otherwise.

Persistence never blocks delivery: a failed durable write is logged and the
caller receives the artifact inline instead.
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from typing import Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repoflow.engines.ingestion.models import IngestionResult
from repoflow.services import PersistenceWriteFailure
from repoflow.services.artifact_service import ArtifactService
from repoflow.services.project_service import ProjectService

log = structlog.get_logger("repoflow.engine")


@dataclass(frozen=True)
class CallerIdentity:
    user_id: uuid.UUID | None = None

    @property
    def signed_in(self) -> bool:
        return self.user_id is not None


ANONYMOUS = CallerIdentity()


@dataclass(frozen=True)
class Durable:
    """Signed-in outcome.

    ``write_succeeded`` is True only when the artifact itself reached storage;
    ``project_id`` is set whenever the project row could be resolved.
    """

    project_id: uuid.UUID | None
    write_succeeded: bool
    diagrams_saved: bool = False

    @property
    def xml_saved(self) -> bool:
        return self.write_succeeded


@dataclass(frozen=True)
class Ephemeral:
    """Anonymous outcome; ``local_id`` keys the client-side store."""

    local_id: str

    @property
    def xml_saved(self) -> bool:
        return False


PersistenceOutcome = Union[Durable, Ephemeral]


def new_local_id() -> str:
    return f"local-{secrets.token_hex(8)}"


class PersistenceAdapter:
    """Route an :class:`IngestionResult` to durable storage or back inline."""

    def __init__(
        self,
        project_service: ProjectService,
        artifact_service: ArtifactService,
    ) -> None:
        self._project_service = project_service
        self._artifact_service = artifact_service

    async def persist(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        result: IngestionResult,
        caller: CallerIdentity,
    ) -> PersistenceOutcome:
        """Persist *result* for *caller*. Never raises; failures degrade to inline delivery."""
        if not caller.signed_in:
            return Ephemeral(local_id=new_local_id())

        try:
            async with session_factory() as session:
                async with session.begin():
                    return await self._persist_durable(session, result, caller)
        except Exception as exc:
            self._log_failure("transaction", result.identity.full_name, exc)
            return Durable(project_id=None, write_succeeded=False)

    async def _persist_durable(
        self,
        session: AsyncSession,
        result: IngestionResult,
        caller: CallerIdentity,
    ) -> Durable:
        repo = result.identity.full_name
        try:
            async with session.begin_nested():
                project = await self._project_service.get_or_create(
                    session, caller.user_id, result.identity
                )
            project_id = project.id
        except Exception as exc:
            self._log_failure("project", repo, exc)
            return Durable(project_id=None, write_succeeded=False)

        try:
            async with session.begin_nested():
                await self._artifact_service.save_artifact(session, project_id, result.xml_content)
            xml_saved = True
        except Exception as exc:
            self._log_failure("artifact", repo, exc, project_id)
            xml_saved = False

        try:
            await self._artifact_service.save_diagrams(project_id, result.diagrams)
            async with session.begin_nested():
                await self._project_service.update_board(
                    session, project_id, result.diagrams.business_flow.source_text
                )
            diagrams_saved = True
        except Exception as exc:
            self._log_failure("diagrams", repo, exc, project_id)
            diagrams_saved = False

        log.info(
            "persistence.saved",
            repo=repo,
            project_id=str(project_id),
            xml_saved=xml_saved,
            diagrams_saved=diagrams_saved,
        )
        return Durable(
            project_id=project_id,
            write_succeeded=xml_saved,
            diagrams_saved=diagrams_saved,
        )

    @staticmethod
    def _log_failure(
        step: str,
        repo: str,
        exc: Exception,
        project_id: uuid.UUID | None = None,
    ) -> None:
        failure = PersistenceWriteFailure(f"{step} write failed for {repo}: {exc}")
        log.warning(
            "persistence.write_failed",
            step=step,
            repo=repo,
            project_id=str(project_id) if project_id else None,
            error=str(failure),
        )
