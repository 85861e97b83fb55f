"""Shared pytest fixtures — no git, network, LLM or database needed (all stubbed)."""

from __future__ import annotations

from pathlib import Path

import pytest

from repoflow.engines.ingestion.models import FetchResult, RepositoryIdentity
from repoflow.services import RepositoryFetchFailed

BUSINESS_DIAGRAM = """flowchart TD
    Visitor[Visitor] --> Readme[Read README]
    class Visitor userNode"""

DATA_FLOW_DIAGRAM = """flowchart LR
    Source[README] --> Render[Render] --> Page[(GitHub page)]
    class Source inputNode"""


def write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create *files* (relative path → content) under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


class StubFetcher:
    """RepositoryFetcher that materializes a fixed tree instead of cloning."""

    def __init__(
        self,
        files: dict[str, str | bytes] | None = None,
        *,
        error: Exception | None = None,
        branch: str = "master",
    ) -> None:
        self.files = files if files is not None else {"README": "Hello World!\n"}
        self.error = error
        self.branch = branch
        self.calls: list[tuple[RepositoryIdentity, Path]] = []

    async def fetch(self, identity: RepositoryIdentity, dest: Path) -> FetchResult:
        self.calls.append((identity, dest))
        if self.error is not None:
            raise self.error
        target = write_tree(dest / identity.name, self.files)
        return FetchResult(
            local_path=target,
            branch=self.branch,
            commit="7fd1a60b01f91b314f59955a4e4d4e80d8edf11d",
            commit_message="Merge pull request #6",
        )


class StubCompletion:
    """CompletionService answering by diagram kind; an Exception value is raised."""

    def __init__(
        self,
        business: str | Exception = BUSINESS_DIAGRAM,
        data: str | Exception = DATA_FLOW_DIAGRAM,
    ) -> None:
        self.business = business
        self.data = data
        self.prompts: list[str] = []

    async def complete(self, prompt: str, context: str | None = None) -> str:
        self.prompts.append(prompt)
        answer = self.business if "overall business flow" in prompt else self.data
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def hello_world() -> RepositoryIdentity:
    return RepositoryIdentity(owner="octocat", name="Hello-World")


@pytest.fixture
def stub_fetcher() -> StubFetcher:
    return StubFetcher()


@pytest.fixture
def failing_fetcher() -> StubFetcher:
    return StubFetcher(
        error=RepositoryFetchFailed("Failed to fetch repository: octocat/missing not found or is private")
    )


@pytest.fixture
def stub_completion() -> StubCompletion:
    return StubCompletion()
