"""ProjectDAO — projects table operations."""

import uuid
from datetime import datetime

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from repoflow.dao.base import BaseDAO
from repoflow.models.project import Project


class ProjectDAO(BaseDAO[Project]):
    model = Project

    async def get_for_user(
        self, session: AsyncSession, user_id: uuid.UUID, repo_url: str
    ) -> Project | None:
        return await self.find_one(session, user_id=user_id, repo_url=repo_url)

    async def upsert_for_user(
        self,
        session: AsyncSession,
        *,
        user_id: uuid.UUID,
        repo_url: str,
        repo_owner: str,
        repo_name: str,
        default_branch: str = "main",
    ) -> Project:
        """Insert the (user, repo_url) project or return the existing row.

        Safe against concurrent ingestions of the same repo by the same user.
        """
        stmt = (
            insert(Project)
            .values(
                user_id=user_id,
                repo_url=repo_url,
                repo_owner=repo_owner,
                repo_name=repo_name,
                default_branch=default_branch,
                status="ready",
            )
            .on_conflict_do_nothing(index_elements=["user_id", "repo_url"])
            .returning(Project)
        )
        result = await session.execute(stmt)
        row = result.scalars().first()
        if row is None:
            # conflict: row already exists for this user and URL
            return await self.get_for_user(session, user_id, repo_url)
        return row

    async def update_board(
        self,
        session: AsyncSession,
        pk: uuid.UUID,
        board_mermaid: str,
        updated_at: datetime,
    ) -> Project | None:
        return await self.update(
            session, pk, board_mermaid=board_mermaid, board_updated_at=updated_at
        )
