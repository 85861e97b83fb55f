"""Diagram synthesizer — one completion per diagram kind, never fails.

Each kind is requested independently and concurrently. Any failure on one
kind (rate limit, timeout, provider error, unusable answer) substitutes the
fallback for that kind only; the other kind is unaffected.
"""

from __future__ import annotations

import asyncio
import os
from typing import Protocol

import structlog

from repoflow.core.rate_limit import ANONYMOUS_KEY, RateLimiter
from repoflow.engines.diagrams.cleaner import clean_diagram_response, is_diagram_header
from repoflow.engines.diagrams.fallback import fallback_diagram
from repoflow.engines.diagrams.models import (
    REQUIRED_KEYWORD,
    DiagramKind,
    DiagramPair,
    DiagramSpec,
)
from repoflow.engines.diagrams.prompts import build_prompt
from repoflow.engines.ingestion.models import RepositoryIdentity
from repoflow.services import DiagramSynthesisFailure

log = structlog.get_logger("repoflow.engine")

DEFAULT_TIMEOUT = 120.0


class CompletionService(Protocol):
    """Anything that turns a prompt (plus optional context) into free text."""

    async def complete(self, prompt: str, context: str | None = None) -> str: ...


def normalize_diagram(source: str) -> str:
    """Rewrite a leading ``graph`` header to ``flowchart``."""
    if is_diagram_header(source, ("graph",)):
        return REQUIRED_KEYWORD + source[len("graph") :]
    return source


def validate_diagram(source: str, kind: DiagramKind) -> str:
    """Return *source* if it is a usable diagram, else raise DiagramSynthesisFailure."""
    if not source:
        raise DiagramSynthesisFailure(f"{kind.value}: no diagram in completion")
    if not is_diagram_header(source, (REQUIRED_KEYWORD,)):
        raise DiagramSynthesisFailure(
            f"{kind.value}: diagram does not start with {REQUIRED_KEYWORD!r}"
        )
    return source


class DiagramSynthesizer:
    """Produce a :class:`DiagramPair` from a serialized artifact."""

    def __init__(
        self,
        completion: CompletionService,
        rate_limiter: RateLimiter | None = None,
        timeout: float | None = None,
    ) -> None:
        self._completion = completion
        self._rate_limiter = rate_limiter
        if timeout is None:
            timeout = float(os.environ.get("REPOFLOW_LLM_TIMEOUT", DEFAULT_TIMEOUT))
        self._timeout = timeout

    async def synthesize(
        self,
        artifact_text: str,
        identity: RepositoryIdentity,
        *,
        rate_key: str | None = None,
    ) -> DiagramPair:
        """Generate both diagrams concurrently. Always returns a full pair."""
        key = rate_key or ANONYMOUS_KEY
        business, data = await asyncio.gather(
            self._generate(DiagramKind.BUSINESS_FLOW, artifact_text, identity, key),
            self._generate(DiagramKind.DATA_FLOW, artifact_text, identity, key),
        )
        return DiagramPair(business_flow=business, data_flow=data)

    async def _generate(
        self,
        kind: DiagramKind,
        artifact_text: str,
        identity: RepositoryIdentity,
        key: str,
    ) -> DiagramSpec:
        try:
            source = await self._attempt(kind, artifact_text, identity, key)
        except Exception as exc:
            log.warning(
                "diagrams.fallback",
                kind=kind.value,
                repo=identity.full_name,
                error=str(exc) or type(exc).__name__,
            )
            return fallback_diagram(identity, kind)

        log.info("diagrams.generated", kind=kind.value, repo=identity.full_name)
        return DiagramSpec(kind=kind, source_text=source)

    async def _attempt(
        self,
        kind: DiagramKind,
        artifact_text: str,
        identity: RepositoryIdentity,
        key: str,
    ) -> str:
        if self._rate_limiter is not None and not self._rate_limiter.allow(key):
            raise DiagramSynthesisFailure(f"{kind.value}: rate limit exceeded for {key}")

        prompt = build_prompt(kind, artifact_text, identity)
        try:
            raw = await asyncio.wait_for(
                self._completion.complete(prompt, context=artifact_text),
                timeout=self._timeout,
            )
        except TimeoutError as exc:
            raise DiagramSynthesisFailure(
                f"{kind.value}: completion timed out after {self._timeout}s"
            ) from exc

        cleaned = normalize_diagram(clean_diagram_response(raw))
        return validate_diagram(cleaned, kind)
