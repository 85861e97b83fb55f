"""Tests for ProjectService."""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from repoflow.dao.project_dao import ProjectDAO
from repoflow.engines.ingestion.models import RepositoryIdentity
from repoflow.models.project import Project
from repoflow.services import NotFoundError
from repoflow.services.project_service import ProjectService

USER_ID = uuid.uuid4()

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_project(**overrides) -> Project:
    defaults = {
        "id": uuid.uuid4(),
        "user_id": USER_ID,
        "repo_url": "https://github.com/octocat/Hello-World",
        "repo_owner": "octocat",
        "repo_name": "Hello-World",
        "default_branch": "master",
        "status": "ready",
        "board_mermaid": None,
        "board_updated_at": None,
        "created_at": datetime.now(timezone.utc),
        "updated_at": datetime.now(timezone.utc),
    }
    defaults.update(overrides)
    return Project(**defaults)


def _make_service() -> tuple[ProjectService, ProjectDAO]:
    dao = ProjectDAO()
    return ProjectService(dao), dao


# ---------------------------------------------------------------------------
# get_or_create
# ---------------------------------------------------------------------------


class TestGetOrCreate:
    async def test_upserts_by_user_and_canonical_url(self):
        project = _make_project()
        service, dao = _make_service()
        dao.upsert_for_user = AsyncMock(return_value=project)
        session = AsyncMock()

        identity = RepositoryIdentity("octocat", "Hello-World", "master")
        result = await service.get_or_create(session, USER_ID, identity)

        assert result is project
        dao.upsert_for_user.assert_awaited_once_with(
            session,
            user_id=USER_ID,
            repo_url="https://github.com/octocat/Hello-World",
            repo_owner="octocat",
            repo_name="Hello-World",
            default_branch="master",
        )


# ---------------------------------------------------------------------------
# get_owned
# ---------------------------------------------------------------------------


class TestGetOwned:
    async def test_owner_gets_project(self):
        project = _make_project()
        service, dao = _make_service()
        dao.get_by_id = AsyncMock(return_value=project)

        assert await service.get_owned(AsyncMock(), project.id, USER_ID) is project

    async def test_missing_project(self):
        service, dao = _make_service()
        dao.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError, match="project not found"):
            await service.get_owned(AsyncMock(), uuid.uuid4(), USER_ID)

    async def test_other_users_project_is_not_found(self):
        project = _make_project(user_id=uuid.uuid4())
        service, dao = _make_service()
        dao.get_by_id = AsyncMock(return_value=project)

        with pytest.raises(NotFoundError):
            await service.get_owned(AsyncMock(), project.id, USER_ID)


# ---------------------------------------------------------------------------
# update_board
# ---------------------------------------------------------------------------


class TestUpdateBoard:
    async def test_sets_board_and_timestamp(self):
        project = _make_project(board_mermaid="flowchart TD")
        service, dao = _make_service()
        dao.update_board = AsyncMock(return_value=project)
        session = AsyncMock()

        result = await service.update_board(session, project.id, "flowchart TD")

        assert result is project
        args = dao.update_board.await_args.args
        assert args[:3] == (session, project.id, "flowchart TD")
        assert args[3].tzinfo is not None

    async def test_missing_project(self):
        service, dao = _make_service()
        dao.update_board = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await service.update_board(AsyncMock(), uuid.uuid4(), "flowchart TD")
