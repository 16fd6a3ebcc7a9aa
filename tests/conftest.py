# =============================================================================
# Shared Test Fixtures — Fake LLM and Deterministic Fake Embedder
# =============================================================================
#
# Nothing here talks to a network. The fake LLM answers from a script (a
# list of replies or a handler callable) and records every call; the fake
# embedder hashes words into a small bag-of-words vector so similarity is
# deterministic and meaningful (shared words → closer vectors).
# =============================================================================

from __future__ import annotations

import hashlib
import re
from collections.abc import Callable

import pytest

from finanalyzer.services.chunker import Chunk
from finanalyzer.services.llm import LLMResponse

EMBEDDING_DIM = 64


class FakeLLM:
    """Scripted LLMProvider: replies in order, or via handler(prompt, system)."""

    def __init__(
        self,
        responses: list[str] | None = None,
        handler: Callable[[str, str | None], str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.handler = handler
        self.error = error
        self.calls: list[dict] = []

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        prompt = messages[-1]["content"]
        self.calls.append({
            "prompt": prompt,
            "system": system,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        if self.handler is not None:
            content = self.handler(prompt, system)
        elif self.responses:
            content = self.responses.pop(0)
        else:
            content = ""
        return LLMResponse(
            content=content.strip(),
            model="fake-model",
            input_tokens=len(prompt.split()),
            output_tokens=len(content.split()),
        )


class FakeEmbedder:
    """Deterministic hashed bag-of-words embedder."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.texts: list[str] = []

    async def embed(self, texts):
        self.texts.extend(texts)
        if self.error is not None:
            raise self.error
        return [self.vector(text) for text in texts]

    @staticmethod
    def vector(text: str) -> list[float]:
        vec = [0.0] * EMBEDDING_DIM
        vec[0] = 0.1  # never all-zero, cosine needs a norm
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            digest = hashlib.md5(word.encode()).hexdigest()
            vec[int(digest, 16) % (EMBEDDING_DIM - 1) + 1] += 1.0
        return vec


SAMPLE_REPORT = """ACME CORP ANNUAL REPORT
Page 1 of 3
Acme Corp designs and sells industrial robots to manufacturers in North America and Europe.
The company operates two segments: Robotics Hardware and Automation Software.

FINANCIAL REVIEW
Revenue grew 12% to $4.2 billion in fiscal 2024, driven by software subscriptions.
Operating margin expanded to 18.5% from 16.1% a year earlier.
Net income was $610 million and free cash flow reached $540 million.
Page 2 of 3

RISK FACTORS
Supply chain disruptions for semiconductors could delay robot deliveries.
Currency fluctuations affect European revenue reported in dollars.
New safety regulations may increase compliance costs.

OUTLOOK
Management expects double digit software growth in 2025 and plans to expand into Asia.
The board approved a $300 million share repurchase program.
Page 3 of 3
"""


@pytest.fixture
def fake_llm_factory():
    return FakeLLM


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def sample_report() -> str:
    return SAMPLE_REPORT


@pytest.fixture
def sample_chunks() -> list[Chunk]:
    texts = [
        "Acme Corp designs and sells industrial robots to manufacturers.",
        "Revenue grew 12% to $4.2 billion in fiscal 2024.",
        "Operating margin expanded to 18.5% from 16.1% a year earlier.",
        "Supply chain disruptions for semiconductors could delay deliveries.",
        "Management expects double digit software growth in 2025.",
    ]
    return [Chunk(id=f"chunk_{i}", text=text, index=i) for i, text in enumerate(texts)]


@pytest.fixture
def fake_embedder_factory():
    return FakeEmbedder
