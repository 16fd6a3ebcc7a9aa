# =============================================================================
# Text Preparation — Cleaning + Token-Based Chunking (tiktoken)
# =============================================================================
#
# Turns raw extracted document text into overlapping chunks, the unit of
# retrieval for both pipelines.
#
# DESIGN DECISION: Token-based chunking (not character-based) because:
# 1. Aligns with LLM/embedding token limits, no surprises at inference time
# 2. tiktoken uses the same BPE tokenizer as OpenAI embedding models
# 3. Token counts are exact, so chunk sizes are comparable across documents
#
# DESIGN DECISION: Two cleaning rule sets.
# The coordinated pipeline strips page markers and all-caps heading lines.
# The specialized pipeline additionally drops bare page-number lines, since
# its larger chunks are fed to the LLM without a validation pass.
#
# ALGORITHM:
# 1. Clean: drop "Page N of M", heading-only lines, collapse whitespace
# 2. Encode full text into tokens using tiktoken (cl100k_base)
# 3. Slide a window of chunk_size tokens with chunk_overlap overlap
# 4. For each window: decode to text, wrap in an immutable Chunk
# =============================================================================

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import tiktoken

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Chunk:
    """
    A bounded span of document text. Immutable once created.

    `id` is stable within one document generation ("chunk_0", "chunk_1", ...).
    """

    id: str
    text: str
    index: int = 0
    token_count: int = 0


@dataclass(frozen=True)
class CleaningRules:
    """Which noise patterns clean_text() removes before whitespace collapse."""

    strip_page_markers: bool = True
    strip_heading_lines: bool = True
    strip_page_number_lines: bool = False


COORDINATED_CLEANING = CleaningRules()
SPECIALIST_CLEANING = CleaningRules(strip_page_number_lines=True)

_PAGE_MARKER_RE = re.compile(r"Page\s+\d+\s+of\s+\d+", re.IGNORECASE)
# A line made only of capitals and spaces: running headers, section banners
_HEADING_LINE_RE = re.compile(r"^[ \t]*[A-Z][A-Z \t]*$", re.MULTILINE)
_PAGE_NUMBER_LINE_RE = re.compile(r"^[ \t]*\d{1,4}[ \t]*$", re.MULTILINE)
_WHITESPACE_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Tiktoken Encoder: Cached Singleton
# ---------------------------------------------------------------------------

_encoder: tiktoken.Encoding | None = None


def _get_encoder() -> tiktoken.Encoding:
    """Lazily initialize and cache the tiktoken encoder."""
    global _encoder
    if _encoder is None:
        _encoder = tiktoken.get_encoding("cl100k_base")
    return _encoder


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def clean_text(text: str, rules: CleaningRules = COORDINATED_CLEANING) -> str:
    """Remove page furniture from extracted text and collapse whitespace."""
    if not text:
        return ""
    if rules.strip_page_markers:
        text = _PAGE_MARKER_RE.sub("", text)
    if rules.strip_heading_lines:
        text = _HEADING_LINE_RE.sub("", text)
    if rules.strip_page_number_lines:
        text = _PAGE_NUMBER_LINE_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def chunk_text(
    text: str,
    chunk_size: int = 300,
    chunk_overlap: int = 40,
) -> list[Chunk]:
    """
    Split text into overlapping token windows.

    Args:
        text: Cleaned document text.
        chunk_size: Maximum tokens per chunk.
        chunk_overlap: Token overlap between consecutive chunks.

    Returns:
        List of Chunk in document order. Empty text yields [].
    """
    if chunk_overlap >= chunk_size:
        raise ValueError(
            f"chunk_overlap ({chunk_overlap}) must be smaller than "
            f"chunk_size ({chunk_size})"
        )

    encoder = _get_encoder()
    all_tokens = encoder.encode(text or "")
    total_tokens = len(all_tokens)

    if total_tokens == 0:
        logger.warning("No tokens to chunk")
        return []

    chunks: list[Chunk] = []
    step = chunk_size - chunk_overlap

    for start in range(0, total_tokens, step):
        end = min(start + chunk_size, total_tokens)
        token_window = all_tokens[start:end]

        window_text = encoder.decode(token_window).strip()
        if window_text:
            position = len(chunks)
            chunks.append(Chunk(
                id=f"chunk_{position}",
                text=window_text,
                index=position,
                token_count=len(token_window),
            ))

        if end >= total_tokens:
            break

    logger.info(
        "Chunked %d tokens into %d chunks (chunk_size=%d, overlap=%d)",
        total_tokens, len(chunks), chunk_size, chunk_overlap,
    )
    return chunks


def prepare_chunks(
    raw_text: str,
    rules: CleaningRules,
    chunk_size: int,
    chunk_overlap: int,
) -> list[Chunk]:
    """Clean then chunk: raw extracted text → retrieval units."""
    return chunk_text(clean_text(raw_text, rules), chunk_size, chunk_overlap)
