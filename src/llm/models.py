# src/llm/models.py — v2
"""LLM-specific types: Message, LLMResponse, TokenUsage.

TokenUsage is an explicit accumulator value: every call returns its own
usage and callers fold them with ``+`` instead of reading a shared counter.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class TokenUsage(BaseModel):
    """Token accounting for one or more LLM calls."""

    model_config = ConfigDict(frozen=True)

    input: int = 0
    output: int = 0
    calls: int = 0
    tracked: bool = True

    @property
    def total(self) -> int:
        return self.input + self.output

    def __add__(self, other: TokenUsage) -> TokenUsage:
        if not isinstance(other, TokenUsage):
            return NotImplemented
        return TokenUsage(
            input=self.input + other.input,
            output=self.output + other.output,
            calls=self.calls + other.calls,
            tracked=self.tracked and other.tracked,
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "input": self.input,
            "output": self.output,
            "calls": self.calls,
            "total": self.total,
            "tracked": self.tracked,
        }


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    provider: str
    latency_ms: int
    raw_response: Any = None

    @property
    def usage(self) -> TokenUsage:
        """Usage of this single call."""
        return TokenUsage(input=self.input_tokens, output=self.output_tokens, calls=1)
