"""DiagramRunner — retroactive diagram generation for already-stored projects."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from repoflow.engines.diagrams.models import DiagramPair
from repoflow.engines.diagrams.synthesizer import DiagramSynthesizer
from repoflow.engines.ingestion.models import RepositoryIdentity
from repoflow.services.artifact_service import ArtifactService
from repoflow.services.project_service import ProjectService

log = structlog.get_logger("repoflow.engine")


class DiagramRunner:
    """Integrated mode: synthesize diagrams from a stored artifact + persist them."""

    def __init__(
        self,
        synthesizer: DiagramSynthesizer,
        project_service: ProjectService,
        artifact_service: ArtifactService,
    ) -> None:
        self._synthesizer = synthesizer
        self._project_service = project_service
        self._artifact_service = artifact_service

    async def generate_for_existing(
        self,
        session: AsyncSession,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        rate_key: str | None = None,
    ) -> tuple[dict[str, str], bool]:
        """Return ``(diagrams, generated)`` for an owned project.

        Projects that already have a board keep their stored diagrams and
        ``generated`` is False. Otherwise both diagrams are synthesized from the
        stored artifact, saved, and mirrored onto the project.

        Raises :class:`NotFoundError` when the project is not owned by
        *user_id* or has no stored artifact.
        """
        project = await self._project_service.get_owned(session, project_id, user_id)
        if project.board_mermaid:
            return await self._artifact_service.load_diagrams(project.id), False

        xml_content = await self._artifact_service.load_artifact(session, project.id)
        identity = RepositoryIdentity(
            owner=project.repo_owner,
            name=project.repo_name,
            default_branch=project.default_branch,
        )
        diagrams: DiagramPair = await self._synthesizer.synthesize(
            xml_content, identity, rate_key=rate_key
        )

        await self._artifact_service.save_diagrams(project.id, diagrams)
        await self._project_service.update_board(
            session, project.id, diagrams.business_flow.source_text
        )
        log.info(
            "diagrams.regenerated",
            project_id=str(project.id),
            repo=identity.full_name,
            fallback_business=diagrams.business_flow.is_fallback,
            fallback_data=diagrams.data_flow.is_fallback,
        )
        return diagrams.as_dict(), True
