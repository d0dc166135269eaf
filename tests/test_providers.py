"""Tests for the LiteLLM provider wrapper."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from filerouter.providers import litellm_provider
from filerouter.providers.litellm_provider import LiteLLMProvider


def completion(content, finish_reason="stop"):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content), finish_reason=finish_reason)],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


class TestLiteLLMProvider:
    """Test LiteLLMProvider."""

    def test_default_model(self):
        assert LiteLLMProvider(default_model="deepseek/deepseek-chat").get_default_model() == "deepseek/deepseek-chat"

    @pytest.mark.asyncio
    async def test_chat(self, monkeypatch):
        mock = AsyncMock(return_value=completion('{"suggestedPath": "CONSEGNA"}'))
        monkeypatch.setattr(litellm_provider, "acompletion", mock)
        provider = LiteLLMProvider(api_key="sk-test", api_base="http://localhost:4000", default_model="test/model")

        response = await provider.chat([{"role": "user", "content": "hi"}])

        assert response.content == '{"suggestedPath": "CONSEGNA"}'
        assert response.finish_reason == "stop"
        assert response.usage["total_tokens"] == 15
        assert not response.is_error
        kwargs = mock.await_args.kwargs
        assert kwargs["model"] == "test/model"
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["api_base"] == "http://localhost:4000"

    @pytest.mark.asyncio
    async def test_chat_error_returned(self, monkeypatch):
        monkeypatch.setattr(litellm_provider, "acompletion", AsyncMock(side_effect=RuntimeError("connection refused")))
        provider = LiteLLMProvider()

        response = await provider.chat([{"role": "user", "content": "hi"}], model="test/other")

        assert response.is_error
        assert "connection refused" in response.content
