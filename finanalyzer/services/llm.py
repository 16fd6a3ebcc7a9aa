# =============================================================================
# Multi-Provider LLM Abstraction — Pluggable Completion Backend
# =============================================================================
#
# Provides a common interface for LLM completions, with concrete
# implementations for Anthropic (Claude) and OpenAI-compatible APIs
# (OpenRouter, DeepSeek, Qwen, OpenAI itself).
#
# DESIGN DECISION: Protocol (structural typing) over ABC.
# Any object with an async `complete()` method works, which keeps the
# pipeline tests free of SDKs: a scripted fake satisfies the protocol.
#
# DESIGN DECISION: Provider failures become ProviderError.
# The orchestrator's fallback policy keys on ProviderError only, so every
# SDK exception (HTTP status, timeout, connection) is translated here and
# nowhere else. Timeouts are bounded by the SDK client (`timeout=`).
#
# ARCHITECTURE:
#   LLMProvider (Protocol)
#   ├── AnthropicProvider       : Claude via native Anthropic SDK
#   ├── OpenAICompatibleProvider: Any OpenAI-compatible API
#   └── get_llm_provider()      : Singleton factory, reads from config
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import anthropic
import openai

from finanalyzer.config import settings
from finanalyzer.errors import ProviderError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class LLMResponse:
    """
    Standardised response from any LLM provider.

    Normalises the different response formats (Anthropic vs OpenAI)
    into a single structure that downstream code can consume.
    """

    content: str           # The generated text (stripped)
    model: str             # Model identifier
    input_tokens: int      # Tokens consumed by the prompt
    output_tokens: int     # Tokens generated in the response


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class LLMProvider(Protocol):
    """
    Protocol defining the completion capability.

    Implementations raise ProviderError on any non-success outcome.
    """

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation messages as dicts with "role" and "content".
                Roles: "user", "assistant" (no "system"; use the system param).
            system: System prompt for the LLM.
            temperature: Override sampling temperature (default from config).
            max_tokens: Override max output tokens (default from config).

        Returns:
            LLMResponse with generated text and usage metrics.

        Raises:
            ProviderError: On HTTP errors, timeouts and connection failures.
        """
        ...


# ---------------------------------------------------------------------------
# Implementation 1: Anthropic (Claude)
# ---------------------------------------------------------------------------


class AnthropicProvider:
    """
    Anthropic Claude provider using the native SDK.

    KEY API DIFFERENCE: Anthropic takes system prompts as a top-level
    `system=` kwarg, NOT as a message with role "system".
    """

    provider_name = "anthropic"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        resolved_key = api_key or settings.llm_api_key or settings.anthropic_api_key
        if not resolved_key:
            raise ValueError(
                "No Anthropic API key configured. Set LLM_API_KEY or "
                "ANTHROPIC_API_KEY in .env"
            )

        self._client = anthropic.AsyncAnthropic(
            api_key=resolved_key,
            timeout=settings.llm_timeout_seconds,
            max_retries=settings.llm_max_retries,
        )
        self._model = model or settings.llm_model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info("Initialized AnthropicProvider (model=%s)", self._model)

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion using Claude."""
        kwargs: dict = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APITimeoutError as e:
            raise ProviderError(
                f"LLM request timed out after {settings.llm_timeout_seconds}s",
                status_code=504,
                provider=self.provider_name,
            ) from e
        except anthropic.APIStatusError as e:
            raise ProviderError(
                f"LLM request failed with status {e.status_code}",
                status_code=e.status_code,
                provider=self.provider_name,
            ) from e
        except anthropic.APIError as e:
            raise ProviderError(
                f"LLM request failed: {e}",
                provider=self.provider_name,
            ) from e

        content = ""
        for block in response.content:
            if block.type == "text":
                content = block.text
                break

        return LLMResponse(
            content=content.strip(),
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


# ---------------------------------------------------------------------------
# Implementation 2: OpenAI-Compatible (OpenRouter, DeepSeek, Qwen, etc.)
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """
    OpenAI-compatible provider for any API that follows the OpenAI spec.

    Switching providers is a config change:
        LLM_PROVIDER=openai_compatible
        LLM_BASE_URL=https://openrouter.ai/api/v1
        LLM_API_KEY=your-key
        LLM_MODEL=openai/gpt-4-turbo-preview
    """

    provider_name = "openai_compatible"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ) -> None:
        resolved_key = api_key or settings.llm_api_key or settings.openai_api_key
        if not resolved_key:
            raise ValueError(
                "No API key configured for OpenAI-compatible provider. "
                "Set LLM_API_KEY in .env"
            )

        client_kwargs: dict = {
            "api_key": resolved_key,
            "timeout": settings.llm_timeout_seconds,
            "max_retries": settings.llm_max_retries,
        }
        resolved_base_url = base_url or settings.llm_base_url
        if resolved_base_url:
            client_kwargs["base_url"] = resolved_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = model or settings.llm_model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info(
            "Initialized OpenAICompatibleProvider (model=%s, base_url=%s)",
            self._model,
            resolved_base_url or "https://api.openai.com/v1",
        )

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion using an OpenAI-compatible API."""
        # OpenAI: system prompt goes as the first message
        all_messages: list[dict[str, str]] = []
        if system:
            all_messages.append({"role": "system", "content": system})
        all_messages.extend(messages)

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=all_messages,
                max_tokens=max_tokens or self._max_tokens,
                temperature=self._temperature if temperature is None else temperature,
            )
        except openai.APITimeoutError as e:
            raise ProviderError(
                f"LLM request timed out after {settings.llm_timeout_seconds}s",
                status_code=504,
                provider=self.provider_name,
            ) from e
        except openai.APIStatusError as e:
            raise ProviderError(
                f"LLM request failed with status {e.status_code}",
                status_code=e.status_code,
                provider=self.provider_name,
            ) from e
        except openai.APIError as e:
            raise ProviderError(
                f"LLM request failed: {e}",
                provider=self.provider_name,
            ) from e

        if not response.choices:
            raise ProviderError(
                "LLM response contained no choices",
                provider=self.provider_name,
            )
        content = response.choices[0].message.content or ""

        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0

        return LLMResponse(
            content=content.strip(),
            model=response.model or self._model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

# Lazy singleton: avoid re-creating client on every request
_provider: AnthropicProvider | OpenAICompatibleProvider | None = None


def get_llm_provider() -> AnthropicProvider | OpenAICompatibleProvider:
    """
    Factory that returns the configured LLM provider.

    Reads `llm_provider` from settings:
    - "anthropic" → AnthropicProvider (Claude)
    - "openai_compatible" → OpenAICompatibleProvider
    """
    global _provider
    if _provider is None:
        if settings.llm_provider == "openai_compatible":
            _provider = OpenAICompatibleProvider()
        else:
            _provider = AnthropicProvider()
    return _provider
