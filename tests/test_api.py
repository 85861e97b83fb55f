"""Tests for the API layer.

Uses httpx.AsyncClient over ASGITransport. Fetch and completion are stubbed;
services are mocked to isolate the API layer from the database.
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

from conftest import BUSINESS_DIAGRAM, StubCompletion, StubFetcher
from repoflow.engines.diagrams.synthesizer import DiagramSynthesizer
from repoflow.engines.ingestion.orchestrator import IngestionOrchestrator
from repoflow.engines.persistence.adapter import (
    ANONYMOUS,
    CallerIdentity,
    Durable,
    PersistenceAdapter,
)
from repoflow.models.project import Project
from repoflow.services import NotFoundError, RepositoryFetchFailed

USER_ID = uuid.uuid4()
PROJECT_ID = uuid.uuid4()
TEST_SECRET = "test-jwt-secret-for-unit-tests"


def _token(sub: str = str(USER_ID), secret: str = TEST_SECRET) -> str:
    return jwt.encode({"sub": sub, "type": "access"}, secret, algorithm="HS256")


def _project() -> Project:
    return Project(
        id=PROJECT_ID,
        user_id=USER_ID,
        repo_url="https://github.com/octocat/Hello-World",
        repo_owner="octocat",
        repo_name="Hello-World",
        default_branch="master",
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_session():
    session = AsyncMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    session.begin = MagicMock(return_value=session)
    session.begin_nested = MagicMock(return_value=session)
    return session


@pytest.fixture
def fetcher() -> StubFetcher:
    return StubFetcher({"README.md": "# Hello World\n", "src/app.py": "print('hi')\n"})


@pytest.fixture
def app(mock_session, fetcher, tmp_path, monkeypatch):
    """Test app without lifespan (no real DB, git or LLM)."""
    from fastapi import FastAPI

    from repoflow.api import deps
    from repoflow.api.errors import register_error_handlers
    from repoflow.api.routers import projects

    monkeypatch.delenv("REPOFLOW_JWT_SECRET", raising=False)

    application = FastAPI()
    register_error_handlers(application)
    application.include_router(projects.router, prefix="/api/v1/projects")

    async def _session():
        yield mock_session

    orchestrator = IngestionOrchestrator(
        fetcher, DiagramSynthesizer(StubCompletion(), timeout=5), workdir_root=tmp_path
    )
    application.dependency_overrides[deps.get_session] = _session
    application.dependency_overrides[deps.get_session_factory] = lambda: MagicMock(
        return_value=mock_session
    )
    application.dependency_overrides[deps.get_orchestrator] = lambda: orchestrator
    return application


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def _signed_in(app) -> None:
    from repoflow.api import deps

    async def _caller():
        return CallerIdentity(user_id=USER_ID)

    app.dependency_overrides[deps.get_caller] = _caller


# ---------------------------------------------------------------------------
# POST /ingest
# ---------------------------------------------------------------------------


class TestIngest:
    async def test_anonymous_ingest(self, client):
        resp = await client.post(
            "/api/v1/projects/ingest", json={"repo_url": "https://github.com/octocat/Hello-World"}
        )
        assert resp.status_code == 200
        data = resp.json()

        assert data["project_id"] is None
        assert data["local_id"].startswith("local-")
        assert data["repo_info"] == {
            "owner": "octocat",
            "name": "Hello-World",
            "url": "https://github.com/octocat/Hello-World",
        }
        assert data["metadata"]["branch"] == "master"
        assert data["metadata"]["file_count"] == 2
        assert data["xml_saved"] is False
        assert data["xml_content"].startswith('<repository name="Hello-World"')
        assert data["xml_preview"] == data["xml_content"][:1000]
        assert data["artifact_size"] == len(data["xml_content"].encode("utf-8"))
        assert data["diagrams"]["businessFlow"] == BUSINESS_DIAGRAM
        assert data["diagrams"]["dataFlow"].startswith("flowchart LR")

    async def test_shorthand_accepted(self, client):
        resp = await client.post("/api/v1/projects/ingest", json={"repo_url": "octocat/Hello-World"})
        assert resp.status_code == 200
        assert resp.json()["repo_info"]["url"] == "https://github.com/octocat/Hello-World"

    async def test_non_github_rejected(self, client, fetcher):
        resp = await client.post(
            "/api/v1/projects/ingest", json={"repo_url": "https://gitlab.com/foo/bar"}
        )
        assert resp.status_code == 422
        assert "Only GitHub" in resp.json()["detail"]
        assert fetcher.calls == []

    async def test_empty_url_rejected(self, client):
        resp = await client.post("/api/v1/projects/ingest", json={"repo_url": "   "})
        assert resp.status_code == 422
        assert "repo_url" in resp.json()["detail"]

    async def test_fetch_failure_is_502(self, client, fetcher):
        fetcher.error = RepositoryFetchFailed(
            "Failed to fetch repository: octocat/private not found or is private"
        )
        resp = await client.post("/api/v1/projects/ingest", json={"repo_url": "octocat/private"})
        assert resp.status_code == 502
        assert "not found or is private" in resp.json()["detail"]

    async def test_signed_in_saved_artifact_is_not_inlined(self, app, client):
        from repoflow.api import deps

        _signed_in(app)
        adapter = AsyncMock(spec=PersistenceAdapter)
        adapter.persist = AsyncMock(
            return_value=Durable(project_id=PROJECT_ID, write_succeeded=True, diagrams_saved=True)
        )
        app.dependency_overrides[deps.get_persistence_adapter] = lambda: adapter

        resp = await client.post("/api/v1/projects/ingest", json={"repo_url": "octocat/Hello-World"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["project_id"] == str(PROJECT_ID)
        assert data["local_id"] is None
        assert data["xml_saved"] is True
        assert "xml_content" not in data
        assert data["xml_preview"].startswith("<repository")
        assert adapter.persist.await_args.args[2] == CallerIdentity(user_id=USER_ID)

    async def test_signed_in_failed_write_inlines_artifact(self, app, client):
        from repoflow.api import deps

        _signed_in(app)
        adapter = AsyncMock(spec=PersistenceAdapter)
        adapter.persist = AsyncMock(
            return_value=Durable(project_id=PROJECT_ID, write_succeeded=False)
        )
        app.dependency_overrides[deps.get_persistence_adapter] = lambda: adapter

        data = (
            await client.post("/api/v1/projects/ingest", json={"repo_url": "octocat/Hello-World"})
        ).json()
        assert data["xml_saved"] is False
        assert data["xml_content"].startswith("<repository")


# ---------------------------------------------------------------------------
# Caller identity from Bearer JWT
# ---------------------------------------------------------------------------


class TestCallerIdentity:
    @pytest.fixture
    def adapter(self, app):
        from repoflow.api import deps

        adapter = AsyncMock(spec=PersistenceAdapter)
        adapter.persist = AsyncMock(
            return_value=Durable(project_id=PROJECT_ID, write_succeeded=True)
        )
        app.dependency_overrides[deps.get_persistence_adapter] = lambda: adapter
        return adapter

    async def test_valid_token_signs_in(self, client, adapter, monkeypatch):
        monkeypatch.setenv("REPOFLOW_JWT_SECRET", TEST_SECRET)
        resp = await client.post(
            "/api/v1/projects/ingest",
            json={"repo_url": "octocat/Hello-World"},
            headers={"Authorization": f"Bearer {_token()}"},
        )
        assert resp.status_code == 200
        assert adapter.persist.await_args.args[2] == CallerIdentity(user_id=USER_ID)

    async def test_bad_signature_is_anonymous(self, client, adapter, monkeypatch):
        monkeypatch.setenv("REPOFLOW_JWT_SECRET", TEST_SECRET)
        await client.post(
            "/api/v1/projects/ingest",
            json={"repo_url": "octocat/Hello-World"},
            headers={"Authorization": f"Bearer {_token(secret='other-secret')}"},
        )
        assert adapter.persist.await_args.args[2] == ANONYMOUS

    async def test_non_uuid_subject_is_anonymous(self, client, adapter, monkeypatch):
        monkeypatch.setenv("REPOFLOW_JWT_SECRET", TEST_SECRET)
        await client.post(
            "/api/v1/projects/ingest",
            json={"repo_url": "octocat/Hello-World"},
            headers={"Authorization": f"Bearer {_token(sub='alice')}"},
        )
        assert adapter.persist.await_args.args[2] == ANONYMOUS

    async def test_auth_disabled_is_anonymous(self, client, adapter):
        await client.post(
            "/api/v1/projects/ingest",
            json={"repo_url": "octocat/Hello-World"},
            headers={"Authorization": f"Bearer {_token()}"},
        )
        assert adapter.persist.await_args.args[2] == ANONYMOUS


# ---------------------------------------------------------------------------
# Stored artifact / diagrams
# ---------------------------------------------------------------------------


class TestStoredResources:
    async def test_xml_requires_sign_in(self, client):
        resp = await client.get(f"/api/v1/projects/{PROJECT_ID}/xml")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "sign in required"

    async def test_xml_for_owner(self, app, client, mock_session):
        from repoflow.api import deps

        _signed_in(app)
        projects = AsyncMock()
        projects.get_owned = AsyncMock(return_value=_project())
        artifacts = AsyncMock()
        artifacts.load_artifact = AsyncMock(return_value="<repository/>")
        app.dependency_overrides[deps.get_project_service] = lambda: projects
        app.dependency_overrides[deps.get_artifact_service] = lambda: artifacts

        resp = await client.get(f"/api/v1/projects/{PROJECT_ID}/xml")
        assert resp.status_code == 200
        assert resp.json() == {"project_id": str(PROJECT_ID), "xml_content": "<repository/>"}
        projects.get_owned.assert_awaited_once_with(mock_session, PROJECT_ID, USER_ID)

    async def test_xml_not_found(self, app, client):
        from repoflow.api import deps

        _signed_in(app)
        projects = AsyncMock()
        projects.get_owned = AsyncMock(side_effect=NotFoundError("project not found"))
        app.dependency_overrides[deps.get_project_service] = lambda: projects

        resp = await client.get(f"/api/v1/projects/{uuid.uuid4()}/xml")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "project not found"

    async def test_diagrams_for_owner(self, app, client):
        from repoflow.api import deps

        _signed_in(app)
        projects = AsyncMock()
        projects.get_owned = AsyncMock(return_value=_project())
        artifacts = AsyncMock()
        artifacts.load_diagrams = AsyncMock(return_value={"businessFlow": BUSINESS_DIAGRAM})
        app.dependency_overrides[deps.get_project_service] = lambda: projects
        app.dependency_overrides[deps.get_artifact_service] = lambda: artifacts

        resp = await client.get(f"/api/v1/projects/{PROJECT_ID}/diagrams")
        assert resp.status_code == 200
        data = resp.json()
        assert data["diagrams"] == {"businessFlow": BUSINESS_DIAGRAM}
        assert data["generated"] is False

    async def test_generate_diagrams(self, app, client, mock_session):
        from repoflow.api import deps

        _signed_in(app)
        runner = AsyncMock()
        runner.generate_for_existing = AsyncMock(
            return_value=({"businessFlow": BUSINESS_DIAGRAM, "dataFlow": "flowchart LR"}, True)
        )
        app.dependency_overrides[deps.get_diagram_runner] = lambda: runner

        resp = await client.post(f"/api/v1/projects/{PROJECT_ID}/generate-diagrams")
        assert resp.status_code == 200
        assert resp.json()["generated"] is True
        runner.generate_for_existing.assert_awaited_once_with(
            mock_session, PROJECT_ID, USER_ID, rate_key=f"user:{USER_ID}"
        )

    async def test_invalid_project_id(self, app, client):
        _signed_in(app)
        resp = await client.get("/api/v1/projects/not-a-uuid/xml")
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


class TestCreateApp:
    async def test_health_and_request_id(self):
        from repoflow.api import create_app

        application = create_app()
        request_id = str(uuid.uuid4())
        async with AsyncClient(
            transport=ASGITransport(app=application), base_url="http://test"
        ) as c:
            resp = await c.get("/health", headers={"X-Request-ID": request_id})

        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert resp.headers["X-Request-ID"] == request_id

    async def test_unhyphenated_client_id_canonicalized(self):
        from repoflow.api import create_app

        raw = uuid.uuid4()
        async with AsyncClient(
            transport=ASGITransport(app=create_app()), base_url="http://test"
        ) as c:
            resp = await c.get("/health", headers={"X-Request-ID": raw.hex})

        assert resp.headers["X-Request-ID"] == str(raw)

    async def test_request_id_generated(self):
        from repoflow.api import create_app

        async with AsyncClient(
            transport=ASGITransport(app=create_app()), base_url="http://test"
        ) as c:
            resp = await c.get("/health", headers={"X-Request-ID": "not-a-uuid"})

        minted = resp.headers["X-Request-ID"]
        assert minted != "not-a-uuid"
        assert str(uuid.UUID(minted)) == minted
