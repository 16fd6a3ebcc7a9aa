# =============================================================================
# Embedding Service — Batch Vector Generation (Provider-Agnostic)
# =============================================================================
#
# Generates vector embeddings using any OpenAI-compatible embedding API.
#
# DESIGN DECISION: Async client (AsyncOpenAI).
# Embedding calls are suspension points of the report pipeline; the index
# for one document is built inside the request's event loop and the four
# section generations then share it read-only.
#
# DESIGN DECISION: API key resolution order:
#   1. OPENAI_API_KEY (explicit embedding key)
#   2. LLM_API_KEY (shared key for LLM + embeddings)
#
# TOKEN LIMITS:
# - Each text: max 8,191 tokens
# - We batch at 100 texts per API call (configurable via settings)
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

import openai

from finanalyzer.config import settings
from finanalyzer.errors import ProviderError

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    """Embedding capability: texts in, one vector per text out (same order)."""

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        ...


class OpenAIEmbedder:
    """
    Embedder backed by the OpenAI embeddings endpoint (or any compatible one).

    Processes texts in sub-batches to respect API token limits and returns
    embeddings in the SAME ORDER as the input texts.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        batch_size: int | None = None,
    ) -> None:
        resolved_key = api_key or settings.openai_api_key or settings.llm_api_key
        if not resolved_key:
            raise ValueError(
                "No API key configured for embeddings. "
                "Set OPENAI_API_KEY or LLM_API_KEY in .env"
            )

        client_kwargs: dict = {
            "api_key": resolved_key,
            "timeout": settings.embedding_timeout_seconds,
        }
        resolved_base_url = base_url or settings.embedding_base_url
        if resolved_base_url:
            client_kwargs["base_url"] = resolved_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = model or settings.embedding_model
        self._batch_size = batch_size or settings.embedding_batch_size

        logger.info(
            "Initialized embedding client (model=%s, base_url=%s)",
            self._model,
            resolved_base_url or "https://api.openai.com/v1",
        )

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Generate embeddings for a batch of texts.

        Raises:
            ProviderError: If any embeddings API call fails.
        """
        if not texts:
            return []

        all_embeddings: list[list[float]] = [[] for _ in texts]

        for i in range(0, len(texts), self._batch_size):
            batch = list(texts[i : i + self._batch_size])
            logger.debug(
                "Embedding batch %d–%d of %d texts (model=%s)",
                i + 1,
                min(i + self._batch_size, len(texts)),
                len(texts),
                self._model,
            )

            create_kwargs: dict = {"model": self._model, "input": batch}
            if settings.embedding_dimensions:
                create_kwargs["dimensions"] = settings.embedding_dimensions

            try:
                response = await self._client.embeddings.create(**create_kwargs)
            except openai.APITimeoutError as e:
                raise ProviderError(
                    "Embedding request timed out",
                    status_code=504,
                    provider="embeddings",
                ) from e
            except openai.APIStatusError as e:
                raise ProviderError(
                    f"Embedding request failed with status {e.status_code}",
                    status_code=e.status_code,
                    provider="embeddings",
                ) from e
            except openai.APIError as e:
                raise ProviderError(
                    f"Embedding request failed: {e}",
                    provider="embeddings",
                ) from e

            # Order mismatches would silently corrupt the index; place each
            # vector by its reported index.
            for item in sorted(response.data, key=lambda x: x.index):
                all_embeddings[i + item.index] = item.embedding

        logger.info(
            "Generated %d embeddings (model=%s)", len(texts), self._model,
        )
        return all_embeddings


_embedder: OpenAIEmbedder | None = None


def get_embedder() -> OpenAIEmbedder:
    """Lazily initialize and cache the process-wide embedder."""
    global _embedder
    if _embedder is None:
        _embedder = OpenAIEmbedder()
    return _embedder


async def embed_query(embedder: Embedder, text: str) -> list[float]:
    """Embed a single query string."""
    result = await embedder.embed([text])
    return result[0]
