# tests/unit/llm/test_unit_models.py — v2
"""Tests for llm/models.py and llm/base_client.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sportsync.llm.base_client import BaseLLMClient
from sportsync.llm.models import LLMResponse, Message, TokenUsage


class TestTokenUsage:
    def test_fold(self):
        total = TokenUsage(input=100, output=50, calls=1) + TokenUsage(input=10, output=5, calls=1)
        assert (total.input, total.output, total.calls, total.total) == (110, 55, 2, 165)

    def test_zero_is_identity(self):
        usage = TokenUsage(input=3, output=4, calls=1)
        assert TokenUsage() + usage == usage

    def test_untracked_propagates(self):
        assert (TokenUsage() + TokenUsage(tracked=False)).tracked is False

    def test_frozen(self):
        with pytest.raises(ValidationError):
            TokenUsage().input = 5  # type: ignore[misc]

    def test_add_other_type(self):
        with pytest.raises(TypeError):
            TokenUsage() + 1  # type: ignore[operator]

    def test_document(self):
        assert TokenUsage(input=1, output=2, calls=1).to_document() == {
            "input": 1, "output": 2, "calls": 1, "total": 3, "tracked": True,
        }


class TestLLMResponse:
    def test_usage(self, mock_llm_response):
        usage = mock_llm_response.usage
        assert usage == TokenUsage(input=100, output=50, calls=1)

    def test_message_role(self):
        with pytest.raises(ValidationError):
            Message(role="tool", content="x")  # type: ignore[arg-type]


class TestBaseLLMClient:
    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            BaseLLMClient()  # type: ignore[abstract]

    def test_has_required_members(self):
        assert hasattr(BaseLLMClient, "complete")
        assert hasattr(BaseLLMClient, "provider_name")
        assert hasattr(BaseLLMClient, "model")


class _Stub:
    """Stands in for a provider SDK response object."""

    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)


class TestAdapters:
    @pytest.mark.asyncio
    async def test_anthropic_adapter(self):
        from unittest.mock import AsyncMock, MagicMock

        from sportsync.llm.adapters.anthropic_adapter import AnthropicAdapter

        adapter = AnthropicAdapter(model="claude-test", api_key="k")
        sdk = MagicMock()
        sdk.messages.create = AsyncMock(return_value=_Stub(
            content=[_Stub(type="text", text='{"blocks": '), _Stub(type="text", text="[]}")],
            usage=_Stub(input_tokens=12, output_tokens=8),
            model="claude-test",
        ))
        adapter._AnthropicAdapter__client = sdk

        response = await adapter.complete(
            [Message(role="user", content="hi")], system="sys", json_output=True
        )
        assert response.content == '{"blocks": []}'
        assert response.usage == TokenUsage(input=12, output=8, calls=1)
        kwargs = sdk.messages.create.call_args.kwargs
        assert kwargs["system"] == "sys"
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]

    @pytest.mark.asyncio
    async def test_openai_adapter_json_mode(self):
        from unittest.mock import AsyncMock, MagicMock

        from sportsync.llm.adapters.openai_adapter import OpenAIAdapter

        adapter = OpenAIAdapter(model="gpt-test", api_key="k")
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(return_value=_Stub(
            choices=[_Stub(message=_Stub(content='{"blocks": []}'))],
            usage=_Stub(prompt_tokens=20, completion_tokens=10),
        ))
        adapter._OpenAIAdapter__client = sdk

        response = await adapter.complete(
            [Message(role="user", content="hi")], system="sys", json_output=True
        )
        assert response.provider == "openai"
        assert response.input_tokens == 20
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
