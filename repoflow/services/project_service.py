"""ProjectService — per-user project records for ingested repositories."""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from repoflow.core.database import utcnow
from repoflow.dao.project_dao import ProjectDAO
from repoflow.engines.ingestion.models import RepositoryIdentity
from repoflow.models.project import Project
from repoflow.services import NotFoundError


class ProjectService:
    """Stateless service over :class:`ProjectDAO`."""

    def __init__(self, project_dao: ProjectDAO) -> None:
        self._project_dao = project_dao

    async def get_or_create(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        identity: RepositoryIdentity,
    ) -> Project:
        """Return the user's project for *identity*, creating it on first ingestion."""
        return await self._project_dao.upsert_for_user(
            session,
            user_id=user_id,
            repo_url=identity.url,
            repo_owner=identity.owner,
            repo_name=identity.name,
            default_branch=identity.default_branch,
        )

    async def get_owned(
        self,
        session: AsyncSession,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Project:
        """Return the project if it belongs to *user_id*.

        Raises :class:`NotFoundError` for missing projects and for projects
        owned by someone else, so existence is not leaked.
        """
        project = await self._project_dao.get_by_id(session, project_id)
        if project is None or project.user_id != user_id:
            raise NotFoundError("project not found")
        return project

    async def update_board(
        self,
        session: AsyncSession,
        project_id: uuid.UUID,
        board_mermaid: str,
    ) -> Project:
        project = await self._project_dao.update_board(
            session, project_id, board_mermaid, utcnow()
        )
        if project is None:
            raise NotFoundError("project not found")
        return project
