"""ArtifactService — artifact and diagram blobs plus their metadata rows."""

from __future__ import annotations

import hashlib
import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from repoflow.dao.repo_artifact_dao import RepoArtifactDAO
from repoflow.engines.diagrams.models import DiagramKind, DiagramPair
from repoflow.models.repo_artifact import RepoArtifact
from repoflow.services import NotFoundError
from repoflow.storage.blob import BlobNotFound, BlobStore

log = structlog.get_logger("repoflow.service")


def artifact_path(project_id: uuid.UUID) -> str:
    return f"{project_id}/repomix.xml"


def diagram_path(project_id: uuid.UUID, kind: DiagramKind) -> str:
    return f"{project_id}/diagrams/{kind.slug}.mmd"


def checksum(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class ArtifactService:
    """Stateless service over a :class:`BlobStore` and :class:`RepoArtifactDAO`."""

    def __init__(self, blob_store: BlobStore, artifact_dao: RepoArtifactDAO) -> None:
        self._blobs = blob_store
        self._artifact_dao = artifact_dao

    async def save_artifact(
        self,
        session: AsyncSession,
        project_id: uuid.UUID,
        xml_content: str,
    ) -> RepoArtifact:
        """Store the artifact text and replace its metadata row."""
        path = artifact_path(project_id)
        await self._blobs.put(path, xml_content)
        return await self._artifact_dao.replace(
            session,
            project_id=project_id,
            storage_path=path,
            checksum=checksum(xml_content),
            file_size=len(xml_content.encode("utf-8")),
        )

    async def load_artifact(self, session: AsyncSession, project_id: uuid.UUID) -> str:
        """Return the stored artifact text.

        Raises :class:`NotFoundError` when no artifact was saved for the project.
        """
        row = await self._artifact_dao.get_for_project(session, project_id)
        if row is None:
            raise NotFoundError("artifact not found")
        try:
            return await self._blobs.get(row.storage_path)
        except BlobNotFound as exc:
            raise NotFoundError("artifact not found") from exc

    async def save_diagrams(self, project_id: uuid.UUID, diagrams: DiagramPair) -> None:
        for kind in DiagramKind:
            await self._blobs.put(diagram_path(project_id, kind), diagrams.get(kind).source_text)

    async def load_diagrams(self, project_id: uuid.UUID) -> dict[str, str]:
        """Return stored diagrams keyed by kind value; missing kinds are omitted."""
        found: dict[str, str] = {}
        for kind in DiagramKind:
            try:
                found[kind.value] = await self._blobs.get(diagram_path(project_id, kind))
            except BlobNotFound:
                log.debug("diagrams.missing", project_id=str(project_id), kind=kind.value)
        return found
