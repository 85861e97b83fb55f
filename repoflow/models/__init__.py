"""SQLAlchemy ORM models — one file per table."""

from repoflow.models.project import Project
from repoflow.models.repo_artifact import RepoArtifact

__all__ = [
    "Project",
    "RepoArtifact",
]
