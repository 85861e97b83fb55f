"""RepoArtifactDAO — repo_artifacts table operations."""

import uuid

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from repoflow.dao.base import BaseDAO
from repoflow.models.repo_artifact import RepoArtifact

ARTIFACT_TYPE_REPOMIX = "repomix"


class RepoArtifactDAO(BaseDAO[RepoArtifact]):
    model = RepoArtifact

    async def get_for_project(
        self,
        session: AsyncSession,
        project_id: uuid.UUID,
        artifact_type: str = ARTIFACT_TYPE_REPOMIX,
    ) -> RepoArtifact | None:
        return await self.find_one(
            session, project_id=project_id, artifact_type=artifact_type
        )

    async def replace(
        self,
        session: AsyncSession,
        *,
        project_id: uuid.UUID,
        storage_path: str,
        checksum: str,
        file_size: int,
        artifact_type: str = ARTIFACT_TYPE_REPOMIX,
    ) -> RepoArtifact:
        """Insert or overwrite the project's single row of *artifact_type*.

        A single ``INSERT ... ON CONFLICT DO UPDATE`` so concurrent writers
        serialize on the unique index and the last one wins.
        """
        ins = insert(RepoArtifact).values(
            project_id=project_id,
            artifact_type=artifact_type,
            storage_path=storage_path,
            checksum=checksum,
            file_size=file_size,
        )
        stmt = ins.on_conflict_do_update(
            index_elements=["project_id", "artifact_type"],
            set_={
                "storage_path": ins.excluded.storage_path,
                "checksum": ins.excluded.checksum,
                "file_size": ins.excluded.file_size,
                "updated_at": func.now(),
            },
        ).returning(RepoArtifact)
        result = await session.execute(stmt)
        return result.scalars().one()
