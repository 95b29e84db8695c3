# src/llm/client_factory.py — v3
"""Factory: instantiate an LLM client from a provider name.

Provider resolution: an explicit ``llm_provider`` setting wins; ``auto``
picks the first provider with a configured API key (Anthropic, then
OpenAI); ``none`` or no key means the caller runs without an LLM.
"""

from __future__ import annotations

import importlib
import logging

from sportsync.config.settings import Settings
from sportsync.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Provider name → adapter class path (lazy import keeps SDKs optional at import time).
_PROVIDER_REGISTRY: dict[str, str] = {
    "anthropic": "sportsync.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "openai": "sportsync.llm.adapters.openai_adapter.OpenAIAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def detect_provider(settings: Settings) -> str | None:
    """Return the provider to use for generation, or None for fallback-only."""
    if settings.llm_provider == "none":
        return None
    if settings.llm_provider != "auto":
        return settings.llm_provider
    if settings.anthropic_api_key:
        return "anthropic"
    if settings.openai_api_key:
        return "openai"
    return None


def create_llm_client(
    provider: str,
    model: str | None = None,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the adapter registered for ``provider``.

    Args:
        provider: Provider identifier (anthropic, openai).
        model: Model name; defaults to the provider's model in settings.
        settings: Application settings (API keys, default models).
        **kwargs: Additional adapter arguments.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])
    init_kwargs = dict(kwargs)

    if settings is not None:
        if provider == "anthropic":
            init_kwargs.setdefault("api_key", settings.anthropic_api_key)
            model = model or settings.anthropic_model
        elif provider == "openai":
            init_kwargs.setdefault("api_key", settings.openai_api_key)
            model = model or settings.openai_model
    if model:
        init_kwargs["model"] = model

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def create_default_client(settings: Settings) -> BaseLLMClient | None:
    """Client for the detected provider, or None when no LLM is configured."""
    provider = detect_provider(settings)
    if provider is None:
        logger.info("No LLM provider configured, generation will use the fallback")
        return None
    return create_llm_client(provider, settings=settings)


def _import_class(class_path: str) -> type:
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
