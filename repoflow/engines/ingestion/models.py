"""Data models for the ingestion engine."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from repoflow.engines.diagrams.models import DiagramPair

# Files above this size are dropped from the artifact, never truncated.
MAX_FILE_SIZE = 100 * 1024


@dataclass(frozen=True)
class RepositoryIdentity:
    """owner/name/branch of a GitHub repository, derived once from the input URL."""

    owner: str
    name: str
    default_branch: str = "main"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def url(self) -> str:
        return f"https://github.com/{self.owner}/{self.name}"

    def with_branch(self, branch: str) -> RepositoryIdentity:
        return dataclasses.replace(self, default_branch=branch)


@dataclass(frozen=True)
class SourceFile:
    """A file that passed the inclusion policy."""

    relative_path: str  # forward slashes, relative to the checkout root
    content: str
    size_bytes: int


class SkipReason(str, Enum):
    """Why a path was left out of the artifact."""

    EXCLUDED_DIR = "excluded_dir"
    EXCLUDED_NAME = "excluded_name"
    DOTFILE = "dotfile"
    EXTENSION = "extension"
    SYMLINK = "symlink"
    TOO_LARGE = "too_large"
    UNDECODABLE = "undecodable"
    UNREADABLE = "unreadable"


@dataclass(frozen=True)
class Skipped:
    """A path the walk decided not to include."""

    relative_path: str
    reason: SkipReason
    detail: str | None = None


@dataclass
class WalkReport:
    """Everything a directory walk found, included or not."""

    files: list[SourceFile] = field(default_factory=list)
    skipped: list[Skipped] = field(default_factory=list)

    def skipped_by(self, reason: SkipReason) -> list[Skipped]:
        return [s for s in self.skipped if s.reason is reason]


@dataclass(frozen=True)
class Artifact:
    """Ordered source files plus metadata; serialized to the XML-like text form."""

    repository_name: str
    generated_at: datetime
    files: tuple[SourceFile, ...]

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def total_size_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)


@dataclass(frozen=True)
class FetchResult:
    """What the fetch collaborator hands back: a local checkout and where it came from."""

    local_path: Path
    branch: str
    commit: str = "latest"
    commit_message: str | None = None


@dataclass(frozen=True)
class IngestOptions:
    output_format: str = "xml"
    verbose: bool = False


@dataclass(frozen=True)
class RepoMetadata:
    branch: str
    commit: str
    commit_message: str | None = None


@dataclass(frozen=True)
class IngestionResult:
    """The pipeline's sole output. Created once, returned, discarded."""

    identity: RepositoryIdentity
    xml_content: str
    metadata: RepoMetadata
    artifact_size_bytes: int
    diagrams: DiagramPair
    file_count: int = 0
    skipped_count: int = 0
