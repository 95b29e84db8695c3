# src/generation/generator.py — v1
"""Content generators: the thing the generation loop asks for raw output.

A generator returns raw text plus the token usage of that one call; the
loop owns parsing, validation and the usage fold.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from sportsync.llm.base_client import BaseLLMClient
from sportsync.llm.models import Message, TokenUsage
from sportsync.llm.retry import with_retry

logger = logging.getLogger(__name__)

_FENCED = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class GenerationError(Exception):
    """Generator produced no usable output (unparseable or provider failure)."""


@dataclass(frozen=True)
class Generation:
    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    provider: str = "unknown"


class ContentGenerator(ABC):
    """Produces raw featured-content text for a system context."""

    @abstractmethod
    async def generate(
        self, system_context: str, correction_hints: Sequence[str] = ()
    ) -> Generation:
        """Return raw output; raise GenerationError when nothing was produced."""


class LLMContentGenerator(ContentGenerator):
    """Generator backed by a BaseLLMClient.

    Args:
        client: Provider adapter.
        user_prompt: Base user message; hints are appended per attempt.
        max_tokens: Completion budget per call.
        temperature: Sampling temperature.
    """

    def __init__(
        self,
        client: BaseLLMClient,
        user_prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> None:
        self._client = client
        self._user_prompt = user_prompt
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def generate(
        self, system_context: str, correction_hints: Sequence[str] = ()
    ) -> Generation:
        prompt = self._user_prompt
        if correction_hints:
            corrections = "\n- ".join(correction_hints)
            prompt += (
                f"\n\nQuality corrections from previous attempt:\n- {corrections}"
                "\nFix all issues and return valid JSON only."
            )

        try:
            response = await with_retry(
                self._client.complete,
                [Message(role="user", content=prompt)],
                system=system_context,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                json_output=True,
                label="featured",
            )
        except Exception as e:
            raise GenerationError(f"{self._client.provider_name} call failed: {e}") from e

        if not response.content.strip():
            raise GenerationError(f"{self._client.provider_name} returned an empty response")
        return Generation(
            content=response.content,
            usage=response.usage,
            provider=self._client.provider_name,
        )


def parse_response_json(raw: str) -> Any:
    """Parse raw model output as JSON, accepting a fenced ```json block.

    Raises:
        GenerationError: When no JSON document can be recovered.
    """
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        pass
    match = _FENCED.search(raw or "")
    if match:
        try:
            return json.loads(match.group(1).strip())
        except json.JSONDecodeError as e:
            raise GenerationError(f"Could not parse JSON from fenced block: {e}") from e
    raise GenerationError(f"Could not parse JSON from response: {(raw or '')[:200]}")


def to_featured_shape(parsed: Any) -> dict[str, Any]:
    """Keep only the ``blocks`` array of a parsed response."""
    if isinstance(parsed, dict) and isinstance(parsed.get("blocks"), list):
        return {"blocks": parsed["blocks"]}
    return {"blocks": []}
