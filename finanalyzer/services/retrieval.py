# =============================================================================
# Retrieval Primitives — Lexical Scoring, Multi-Query Search, Dedup
# =============================================================================
#
# Shared by the coordinated researcher (hybrid semantic + lexical search)
# and the specialized pipeline (semantic only).
#
# Lexical scoring is deliberately naive: queries are split into keyword
# phrases on commas, semicolons and hyphens, and a chunk scores one point
# per literal (case-insensitive) occurrence of each phrase.
# =============================================================================

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from finanalyzer.services.chunker import Chunk
from finanalyzer.services.vectorstore import RetrievalIndex

logger = logging.getLogger(__name__)

# Two chunks sharing this many leading characters count as duplicates.
SIGNATURE_LENGTH = 160

_KEYWORD_SPLIT_RE = re.compile(r"[,;\-]")


def split_keywords(queries: Iterable[str]) -> list[str]:
    """Split every query into keyword phrases (lowercased, trimmed, non-empty)."""
    keywords: list[str] = []
    for query in queries:
        for part in _KEYWORD_SPLIT_RE.split(query or ""):
            part = part.strip().lower()
            if part:
                keywords.append(part)
    return keywords


def lexical_score(text: str, keywords: Sequence[str]) -> int:
    """Count literal occurrences of each keyword in text (case-insensitive)."""
    lower = text.lower()
    return sum(
        len(re.findall(re.escape(keyword), lower))
        for keyword in keywords
        if keyword
    )


def lexical_search(
    chunks: Sequence[Chunk],
    queries: Sequence[str],
    limit: int = 4,
) -> list[Chunk]:
    """Top `limit` chunks by keyword-overlap score; zero-score chunks are dropped."""
    if not chunks or not queries:
        return []
    keywords = split_keywords(queries)
    if not keywords:
        return []

    scored = [(lexical_score(chunk.text, keywords), chunk) for chunk in chunks]
    # sorted() is stable: ties keep document order
    ranked = sorted(
        (entry for entry in scored if entry[0] > 0),
        key=lambda entry: entry[0],
        reverse=True,
    )
    return [chunk for _, chunk in ranked[:limit]]


async def semantic_search(
    index: RetrievalIndex,
    queries: Sequence[str],
    top_k: int,
) -> list[Chunk]:
    """Run one similarity search per non-empty query and concatenate the hits."""
    matches: list[Chunk] = []
    for query in queries:
        if not query or not query.strip():
            continue
        results = await index.similarity_search(query, top_k=top_k)
        matches.extend(result.chunk for result in results)
    return matches


def signature(chunk: Chunk) -> str:
    """Content-prefix signature used for near-duplicate detection."""
    return chunk.text[:SIGNATURE_LENGTH]


def dedupe_by_signature(chunks: Iterable[Chunk]) -> list[Chunk]:
    """Keep the first chunk for each content-prefix signature, preserving order."""
    seen: set[str] = set()
    unique: list[Chunk] = []
    for chunk in chunks:
        key = signature(chunk)
        if key not in seen:
            seen.add(key)
            unique.append(chunk)
    return unique
