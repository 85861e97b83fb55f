"""Thin async wrapper around litellm.acompletion()."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any

import litellm

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openrouter/anthropic/claude-3.5-sonnet"

# Upper bound on the project context attached to the system prompt.
MAX_CONTEXT_CHARS = 500_000


class EmptyCompletionError(RuntimeError):
    """The model answered with no content."""


# ── LLM Response ─────────────────────────────────────────────────────────────
@dataclass
class LLMResponse:
    """Standardised response from a single LLM call."""

    content: str = ""
    stop_reason: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0


# ── LLM Client ───────────────────────────────────────────────────────────────
class LLMClient:
    """Async-only wrapper around ``litellm.acompletion()``.

    Model and key come from ``REPOFLOW_LLM_MODEL`` / ``REPOFLOW_LLM_API_KEY``
    unless passed explicitly; without a key litellm falls back to the
    provider's own variable (``OPENROUTER_API_KEY``, ``ANTHROPIC_API_KEY``, ...).

    Usage::

        client = LLMClient()
        text = await client.complete("Draw the data flow", context=artifact_xml)
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        *,
        system_prompt: str = "",
        temperature: float = 0.3,
        max_tokens: int = 8000,
    ) -> None:
        self.model = model or os.environ.get("REPOFLOW_LLM_MODEL", DEFAULT_MODEL)
        self._api_key = api_key or os.environ.get("REPOFLOW_LLM_API_KEY")
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def create(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Send a chat completion request and return a standardised response."""
        full_messages: list[dict[str, Any]] = [
            {"role": "system", "content": system},
            *messages,
        ]

        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": full_messages,
            "temperature": self._temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self._max_tokens,
        }
        if self._api_key:
            kwargs["api_key"] = self._api_key

        t0 = time.monotonic()
        raw = await litellm.acompletion(**kwargs)
        latency_ms = int((time.monotonic() - t0) * 1000)

        choice = raw.choices[0]
        usage = getattr(raw, "usage", None) or litellm.Usage()

        response = LLMResponse(
            content=choice.message.content or "",
            stop_reason=choice.finish_reason or "",
            input_tokens=usage.prompt_tokens or 0,
            output_tokens=usage.completion_tokens or 0,
            latency_ms=latency_ms,
        )
        logger.info(
            "llm call model=%s in=%d out=%d latency_ms=%d",
            self.model,
            response.input_tokens,
            response.output_tokens,
            response.latency_ms,
        )
        return response

    async def complete(self, prompt: str, context: str | None = None) -> str:
        """Return the completion text for *prompt*.

        *context* (the serialized project) is appended to the system prompt,
        capped at :data:`MAX_CONTEXT_CHARS`. Raises on provider errors and on
        an empty answer; callers decide how to degrade.
        """
        system = self._system_prompt
        if context:
            system += (
                "\n\n# Project context\n"
                "The following document contains the project structure and code:\n\n"
                + context[:MAX_CONTEXT_CHARS]
            )

        response = await self.create(
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
        text = response.content.strip()
        if not text:
            raise EmptyCompletionError(f"model {self.model} returned an empty completion")
        return text
