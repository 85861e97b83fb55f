"""Projects router — ingestion plus stored artifact / diagram access."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repoflow.api.deps import (
    get_artifact_service,
    get_caller,
    get_diagram_runner,
    get_orchestrator,
    get_persistence_adapter,
    get_project_service,
    get_session,
    get_session_factory,
    require_caller,
)
from repoflow.api.schemas.project import (
    XML_PREVIEW_CHARS,
    ArtifactResponse,
    DiagramsSchema,
    IngestRequest,
    IngestResponse,
    RepoInfo,
    RepoMetadataSchema,
    StoredDiagramsResponse,
)
from repoflow.core.rate_limit import rate_limit_key
from repoflow.engines.diagrams.runner import DiagramRunner
from repoflow.engines.ingestion.models import IngestionResult
from repoflow.engines.ingestion.orchestrator import IngestionOrchestrator
from repoflow.engines.persistence.adapter import (
    CallerIdentity,
    Durable,
    PersistenceAdapter,
    PersistenceOutcome,
)
from repoflow.services.artifact_service import ArtifactService
from repoflow.services.project_service import ProjectService

router = APIRouter()


def _to_response(result: IngestionResult, outcome: PersistenceOutcome) -> IngestResponse:
    diagrams = result.diagrams
    if isinstance(outcome, Durable):
        ids = {"project_id": outcome.project_id}
    else:
        ids = {"local_id": outcome.local_id}
    return IngestResponse(
        **ids,
        repo_info=RepoInfo(
            owner=result.identity.owner,
            name=result.identity.name,
            url=result.identity.url,
        ),
        metadata=RepoMetadataSchema(
            branch=result.metadata.branch,
            commit=result.metadata.commit,
            commit_message=result.metadata.commit_message,
            file_count=result.file_count,
            skipped_count=result.skipped_count,
        ),
        artifact_size=result.artifact_size_bytes,
        diagrams=DiagramsSchema(
            business_flow=diagrams.business_flow.source_text,
            data_flow=diagrams.data_flow.source_text,
            business_flow_fallback=diagrams.business_flow.is_fallback,
            data_flow_fallback=diagrams.data_flow.is_fallback,
        ),
        xml_content=None if outcome.xml_saved else result.xml_content,
        xml_preview=result.xml_content[:XML_PREVIEW_CHARS],
        xml_saved=outcome.xml_saved,
    )


@router.post("/ingest", response_model=IngestResponse)
async def ingest_repository(
    body: IngestRequest,
    caller: CallerIdentity = Depends(get_caller),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    orchestrator: IngestionOrchestrator = Depends(get_orchestrator),
    adapter: PersistenceAdapter = Depends(get_persistence_adapter),
) -> IngestResponse:
    result = await orchestrator.ingest(body.repo_url, rate_key=rate_limit_key(caller.user_id))
    outcome = await adapter.persist(session_factory, result, caller)
    return _to_response(result, outcome)


@router.get("/{project_id}/xml", response_model=ArtifactResponse)
async def get_project_xml(
    project_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    caller: CallerIdentity = Depends(require_caller),
    projects: ProjectService = Depends(get_project_service),
    artifacts: ArtifactService = Depends(get_artifact_service),
) -> ArtifactResponse:
    project = await projects.get_owned(session, project_id, caller.user_id)
    xml_content = await artifacts.load_artifact(session, project.id)
    return ArtifactResponse(project_id=project.id, xml_content=xml_content)


@router.get("/{project_id}/diagrams", response_model=StoredDiagramsResponse)
async def get_project_diagrams(
    project_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    caller: CallerIdentity = Depends(require_caller),
    projects: ProjectService = Depends(get_project_service),
    artifacts: ArtifactService = Depends(get_artifact_service),
) -> StoredDiagramsResponse:
    project = await projects.get_owned(session, project_id, caller.user_id)
    diagrams = await artifacts.load_diagrams(project.id)
    return StoredDiagramsResponse(project_id=project.id, diagrams=diagrams)


@router.post("/{project_id}/generate-diagrams", response_model=StoredDiagramsResponse)
async def generate_project_diagrams(
    project_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    caller: CallerIdentity = Depends(require_caller),
    runner: DiagramRunner = Depends(get_diagram_runner),
) -> StoredDiagramsResponse:
    diagrams, generated = await runner.generate_for_existing(
        session, project_id, caller.user_id, rate_key=rate_limit_key(caller.user_id)
    )
    return StoredDiagramsResponse(project_id=project_id, diagrams=diagrams, generated=generated)
