# =============================================================================
# Unit Tests — LLM Providers and Embedder (SDK clients mocked)
# =============================================================================
#
# The SDK clients are replaced with mocks: these tests check request shaping
# and the translation of SDK errors into ProviderError, nothing more.
# =============================================================================

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import openai
import pytest

from finanalyzer.errors import ProviderError
from finanalyzer.services import llm
from finanalyzer.services.embedder import OpenAIEmbedder
from finanalyzer.services.llm import AnthropicProvider, OpenAICompatibleProvider


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


_REQUEST = httpx.Request("POST", "https://api.example.com/v1/test")


def _status_error(module, status: int):
    return module.APIStatusError(
        f"status {status}",
        response=httpx.Response(status, request=_REQUEST),
        body=None,
    )


def _anthropic_message(text: str):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        model="claude-test",
        usage=SimpleNamespace(input_tokens=11, output_tokens=7),
    )


def _openai_completion(text: str | None, choices: bool = True):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))] if choices else [],
        model="gpt-test",
        usage=SimpleNamespace(prompt_tokens=5, completion_tokens=3),
    )


class TestLLMProviderFactory:
    def test_factory_raises_without_api_key(self):
        original = llm._provider
        llm._provider = None
        try:
            with patch.object(
                llm.settings, "llm_provider", "anthropic"
            ), patch.object(
                llm.settings, "llm_api_key", None
            ), patch.object(
                llm.settings, "anthropic_api_key", ""
            ):
                with pytest.raises(ValueError, match="API key"):
                    llm.get_llm_provider()
        finally:
            llm._provider = original


class TestAnthropicProvider:
    def _provider(self, create: AsyncMock) -> AnthropicProvider:
        provider = AnthropicProvider(api_key="test-key", model="claude-test")
        provider._client = MagicMock()
        provider._client.messages.create = create
        return provider

    def test_system_prompt_is_top_level_and_content_stripped(self):
        create = AsyncMock(return_value=_anthropic_message("  • Point  \n"))
        provider = self._provider(create)

        response = _run(provider.complete(
            [{"role": "user", "content": "hi"}],
            system="You are the PLANNER agent",
            temperature=0.2,
            max_tokens=320,
        ))

        assert response.content == "• Point"
        assert response.input_tokens == 11
        kwargs = create.call_args.kwargs
        assert kwargs["system"] == "You are the PLANNER agent"
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 320

    def test_zero_temperature_respected(self):
        create = AsyncMock(return_value=_anthropic_message("ok"))
        _run(self._provider(create).complete([{"role": "user", "content": "hi"}], temperature=0.0))
        assert create.call_args.kwargs["temperature"] == 0.0

    def test_status_error_becomes_provider_error(self):
        provider = self._provider(AsyncMock(side_effect=_status_error(anthropic, 429)))
        with pytest.raises(ProviderError) as exc_info:
            _run(provider.complete([{"role": "user", "content": "hi"}]))
        assert exc_info.value.status_code == 429
        assert exc_info.value.provider == "anthropic"

    def test_timeout_becomes_504(self):
        provider = self._provider(
            AsyncMock(side_effect=anthropic.APITimeoutError(request=_REQUEST)),
        )
        with pytest.raises(ProviderError) as exc_info:
            _run(provider.complete([{"role": "user", "content": "hi"}]))
        assert exc_info.value.status_code == 504


class TestOpenAICompatibleProvider:
    def _provider(self, create: AsyncMock) -> OpenAICompatibleProvider:
        provider = OpenAICompatibleProvider(api_key="test-key", model="gpt-test")
        provider._client = MagicMock()
        provider._client.chat.completions.create = create
        return provider

    def test_system_prompt_prepended_as_message(self):
        create = AsyncMock(return_value=_openai_completion(" Answer. "))
        response = _run(self._provider(create).complete(
            [{"role": "user", "content": "hi"}], system="SYSTEM",
        ))

        assert response.content == "Answer."
        messages = create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "SYSTEM"}
        assert messages[1] == {"role": "user", "content": "hi"}

    def test_null_content_is_empty_string(self):
        create = AsyncMock(return_value=_openai_completion(None))
        response = _run(self._provider(create).complete([{"role": "user", "content": "hi"}]))
        assert response.content == ""

    def test_no_choices_is_provider_error(self):
        create = AsyncMock(return_value=_openai_completion("x", choices=False))
        with pytest.raises(ProviderError):
            _run(self._provider(create).complete([{"role": "user", "content": "hi"}]))

    def test_status_error_becomes_provider_error(self):
        create = AsyncMock(side_effect=_status_error(openai, 500))
        with pytest.raises(ProviderError) as exc_info:
            _run(self._provider(create).complete([{"role": "user", "content": "hi"}]))
        assert exc_info.value.status_code == 500


class TestOpenAIEmbedder:
    def _embedder(self, create: AsyncMock, batch_size: int = 2) -> OpenAIEmbedder:
        embedder = OpenAIEmbedder(api_key="test-key", model="emb-test", batch_size=batch_size)
        embedder._client = MagicMock()
        embedder._client.embeddings.create = create
        return embedder

    def test_batches_and_preserves_order(self):
        async def fake_create(model, input, **kwargs):
            # Return items out of order; the embedder must reorder by index
            items = [
                SimpleNamespace(index=i, embedding=[float(len(text))])
                for i, text in enumerate(input)
            ]
            return SimpleNamespace(data=list(reversed(items)))

        create = AsyncMock(side_effect=fake_create)
        vectors = _run(self._embedder(create).embed(["a", "bb", "ccc"]))

        assert vectors == [[1.0], [2.0], [3.0]]
        assert create.await_count == 2

    def test_empty_input_makes_no_call(self):
        create = AsyncMock()
        assert _run(self._embedder(create).embed([])) == []
        create.assert_not_awaited()

    def test_status_error_becomes_provider_error(self):
        create = AsyncMock(side_effect=_status_error(openai, 401))
        with pytest.raises(ProviderError) as exc_info:
            _run(self._embedder(create).embed(["a"]))
        assert exc_info.value.status_code == 401
