"""Command-line ingestion — no DB required.

Usage:
    python -m repoflow https://github.com/octocat/Hello-World
    python -m repoflow octocat/Hello-World -o hello.xml
    python -m repoflow /path/to/checkout -o out.xml      # serialize only, no diagrams
    python -m repoflow octocat/Hello-World --json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from repoflow.agent.llm_client import LLMClient
from repoflow.core.logging import setup_logging
from repoflow.core.rate_limit import InMemoryRateLimiter
from repoflow.engines.diagrams.prompts import ARCHITECT_SYSTEM_PROMPT
from repoflow.engines.diagrams.synthesizer import DiagramSynthesizer
from repoflow.engines.ingestion.fetcher import GitFetcher
from repoflow.engines.ingestion.models import IngestionResult, IngestOptions
from repoflow.engines.ingestion.orchestrator import IngestionOrchestrator
from repoflow.engines.ingestion.serializer import serialize_repository
from repoflow.services import ServiceError


def _build_orchestrator() -> IngestionOrchestrator:
    synthesizer = DiagramSynthesizer(
        LLMClient(system_prompt=ARCHITECT_SYSTEM_PROMPT),
        rate_limiter=InMemoryRateLimiter(),
    )
    return IngestionOrchestrator(GitFetcher(), synthesizer)


def _print_result(result: IngestionResult, as_json: bool) -> None:
    diagrams = result.diagrams
    if as_json:
        print(
            json.dumps(
                {
                    "repo": result.identity.full_name,
                    "url": result.identity.url,
                    "branch": result.metadata.branch,
                    "commit": result.metadata.commit,
                    "commit_message": result.metadata.commit_message,
                    "file_count": result.file_count,
                    "skipped_count": result.skipped_count,
                    "artifact_size": result.artifact_size_bytes,
                    "diagrams": diagrams.as_dict(),
                },
                indent=2,
            )
        )
        return

    print(f"Repository:  {result.identity.full_name} ({result.identity.url})")
    print(f"Branch:      {result.metadata.branch} @ {result.metadata.commit[:12]}")
    if result.metadata.commit_message:
        print(f"Message:     {result.metadata.commit_message}")
    print(f"Files:       {result.file_count} included, {result.skipped_count} skipped")
    print(f"Artifact:    {result.artifact_size_bytes} bytes")
    for spec in (diagrams.business_flow, diagrams.data_flow):
        origin = "fallback" if spec.is_fallback else "synthesized"
        print(f"\n--- {spec.kind.value} ({origin}) ---")
        print(spec.source_text)


def _write_output(path: str | None, text: str) -> None:
    if path is None:
        return
    Path(path).write_text(text, encoding="utf-8")
    print(f"Wrote {len(text.encode('utf-8'))} bytes to {path}", file=sys.stderr)


async def _ingest(target: str, args: argparse.Namespace) -> None:
    result = await _build_orchestrator().ingest(target, IngestOptions(verbose=args.verbose))
    _write_output(args.output, result.xml_content)
    _print_result(result, args.as_json)


def _serialize_local(repo: Path, args: argparse.Namespace) -> None:
    text, artifact, report = serialize_repository(repo, repo.name, verbose=args.verbose)
    _write_output(args.output, text)
    print(f"Serialized {artifact.file_count} files ({artifact.total_size_bytes} bytes), "
          f"skipped {len(report.skipped)}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="repoflow",
        description="Serialize a GitHub repository and draw its business and data flows",
    )
    parser.add_argument("target", help="GitHub URL, owner/name shorthand, or a local directory")
    parser.add_argument("-o", "--output", default=None, help="Write the artifact to this file")
    parser.add_argument("--json", action="store_true", dest="as_json", help="Output summary as JSON")
    parser.add_argument("--verbose", action="store_true", help="Log every skipped path")
    args = parser.parse_args(argv)

    setup_logging("INFO" if args.verbose else "WARNING")

    local = Path(args.target)
    if local.is_dir():
        _serialize_local(local.resolve(), args)
        return

    try:
        asyncio.run(_ingest(args.target, args))
    except ServiceError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
