# src/llm/base_client.py — v2
"""Abstract LLM client interface used by the content generator."""

from __future__ import annotations

from abc import ABC, abstractmethod

from sportsync.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        json_output: bool = False,
    ) -> LLMResponse:
        """Text completion; ``json_output`` asks for a bare JSON object where supported."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, openai)."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier sent to the provider."""
