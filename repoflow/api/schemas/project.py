"""Ingestion and project request/response schemas."""

from __future__ import annotations

import uuid

from pydantic import (
    BaseModel,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)

XML_PREVIEW_CHARS = 1000


class IngestRequest(BaseModel):
    repo_url: str = Field(min_length=1)

    @field_validator("repo_url", mode="before")
    @classmethod
    def _strip_whitespace(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v


class RepoInfo(BaseModel):
    owner: str
    name: str
    url: str


class RepoMetadataSchema(BaseModel):
    branch: str
    commit: str
    commit_message: str | None = None
    file_count: int
    skipped_count: int


class DiagramsSchema(BaseModel):
    business_flow: str = Field(serialization_alias="businessFlow")
    data_flow: str = Field(serialization_alias="dataFlow")
    business_flow_fallback: bool = False
    data_flow_fallback: bool = False


class IngestResponse(BaseModel):
    """Ingestion envelope.

    Exactly one of ``project_id`` (signed-in) or ``local_id`` (anonymous) is
    set. ``xml_content`` is present unless ``xml_saved`` is True, in which
    case the key is omitted and the artifact is fetched later from
    ``GET /{project_id}/xml``.
    """

    project_id: uuid.UUID | None = None
    local_id: str | None = None
    repo_info: RepoInfo
    metadata: RepoMetadataSchema
    artifact_size: int
    diagrams: DiagramsSchema
    xml_content: str | None = None
    xml_preview: str
    xml_saved: bool

    # unannotated return keeps the field schema in the OpenAPI document
    @model_serializer(mode="wrap")
    def _omit_saved_artifact(self, handler: SerializerFunctionWrapHandler):
        data = handler(self)
        if self.xml_saved:
            data.pop("xml_content", None)
        return data


class ArtifactResponse(BaseModel):
    project_id: uuid.UUID
    xml_content: str


class StoredDiagramsResponse(BaseModel):
    """Stored diagrams keyed by kind (``businessFlow`` / ``dataFlow``); missing kinds omitted."""

    project_id: uuid.UUID
    diagrams: dict[str, str]
    generated: bool = False
