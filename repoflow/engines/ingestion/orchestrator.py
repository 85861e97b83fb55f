"""IngestionOrchestrator — locate → fetch → serialize → synthesize → assemble."""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from pathlib import Path

import structlog

from repoflow.engines.diagrams.synthesizer import DiagramSynthesizer
from repoflow.engines.ingestion.fetcher import RepositoryFetcher
from repoflow.engines.ingestion.locator import parse_github_url
from repoflow.engines.ingestion.models import (
    IngestionResult,
    IngestOptions,
    RepoMetadata,
)
from repoflow.engines.ingestion.serializer import serialize_repository
from repoflow.services import RepositoryIngestionFailed

log = structlog.get_logger("repoflow.engine")

SUPPORTED_FORMATS = frozenset({"xml"})


class IngestionOrchestrator:
    """Run one ingestion end to end.

    Holds no per-request state; one instance can serve concurrent requests.
    The temporary checkout is removed on every exit path.
    """

    def __init__(
        self,
        fetcher: RepositoryFetcher,
        synthesizer: DiagramSynthesizer,
        workdir_root: Path | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._synthesizer = synthesizer
        self._workdir_root = workdir_root

    async def ingest(
        self,
        repo_url: str,
        options: IngestOptions | None = None,
        *,
        rate_key: str | None = None,
    ) -> IngestionResult:
        """Ingest *repo_url* and return the assembled result.

        Raises ``ValueError`` for an unsupported output format,
        :class:`InvalidRepositoryUrl` before any I/O, and
        :class:`RepositoryIngestionFailed` when fetching or serializing fails.
        Diagram problems never raise; they degrade to fallback diagrams.
        """
        options = options or IngestOptions()
        if options.output_format not in SUPPORTED_FORMATS:
            raise ValueError(f"unsupported output format: {options.output_format!r}")

        identity = parse_github_url(repo_url)
        log.info("ingest.started", repo=identity.full_name)

        workdir = Path(tempfile.mkdtemp(prefix="repoflow-", dir=self._workdir_root))
        try:
            try:
                fetched = await self._fetcher.fetch(identity, workdir)
                xml_content, artifact, report = await asyncio.to_thread(
                    serialize_repository,
                    fetched.local_path,
                    identity.name,
                    verbose=options.verbose,
                )
            except Exception as exc:
                log.error("ingest.failed", repo=identity.full_name, error=str(exc))
                raise RepositoryIngestionFailed(str(exc)) from exc
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

        identity = identity.with_branch(fetched.branch)
        diagrams = await self._synthesizer.synthesize(xml_content, identity, rate_key=rate_key)

        result = IngestionResult(
            identity=identity,
            xml_content=xml_content,
            metadata=RepoMetadata(
                branch=fetched.branch,
                commit=fetched.commit,
                commit_message=fetched.commit_message,
            ),
            artifact_size_bytes=len(xml_content.encode("utf-8")),
            diagrams=diagrams,
            file_count=artifact.file_count,
            skipped_count=len(report.skipped),
        )
        log.info(
            "ingest.done",
            repo=identity.full_name,
            files=result.file_count,
            size=result.artifact_size_bytes,
            fallback_business=diagrams.business_flow.is_fallback,
            fallback_data=diagrams.data_flow.is_fallback,
        )
        return result
