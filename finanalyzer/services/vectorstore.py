# =============================================================================
# Retrieval Index — In-Process ChromaDB Similarity Search
# =============================================================================
#
# One RetrievalIndex is built per document generation: every chunk is
# embedded once, stored in a private Chroma collection, and the index is
# read-only from then on. The four section generations of a report (and
# later follow-up questions) share the same instance without copying.
#
# DESIGN DECISION: ChromaDB in-process mode (chromadb.Client()).
# No extra infrastructure, cosine distance via HNSW, and the collection is
# private to the index (unique name), so concurrent reports never see each
# other's chunks.
#
# DESIGN DECISION: Chroma's Python client is synchronous.
# Collection creation, inserts and queries all run in asyncio.to_thread()
# so the event loop only ever waits on provider calls.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import uuid4

import chromadb

from finanalyzer.services.chunker import Chunk
from finanalyzer.services.embedder import Embedder, embed_query

logger = logging.getLogger(__name__)


@dataclass
class VectorSearchResult:
    """A single similarity-search hit."""

    chunk: Chunk
    similarity_score: float  # 1 - cosine distance, higher = more relevant


_client: chromadb.ClientAPI | None = None


def _get_client() -> chromadb.ClientAPI:
    """Lazily create the shared in-process Chroma client."""
    global _client
    if _client is None:
        _client = chromadb.Client()
    return _client


def _create_collection(
    chunks: Sequence[Chunk],
    embeddings: Sequence[Sequence[float]],
) -> chromadb.Collection:
    """Create a private collection and insert every chunk (blocking)."""
    collection = _get_client().create_collection(
        name=f"doc_{uuid4().hex}",
        metadata={"hnsw:space": "cosine"},
    )
    collection.add(
        ids=[chunk.id for chunk in chunks],
        documents=[chunk.text for chunk in chunks],
        embeddings=[list(vector) for vector in embeddings],
    )
    return collection


class RetrievalIndex:
    """
    Semantic index over one document's chunks.

    Build with `await RetrievalIndex.build(chunks, embedder)`. The
    constructor only wraps an already-populated collection.
    """

    def __init__(
        self,
        chunks: Sequence[Chunk],
        embedder: Embedder,
        collection: chromadb.Collection | None = None,
    ) -> None:
        self._chunks: tuple[Chunk, ...] = tuple(chunks)
        self._by_id = {chunk.id: chunk for chunk in self._chunks}
        self._embedder = embedder
        self._collection = collection

    @classmethod
    async def build(
        cls,
        chunks: Sequence[Chunk],
        embedder: Embedder,
    ) -> RetrievalIndex:
        """Embed every chunk once and index it."""
        embeddings = await embedder.embed([chunk.text for chunk in chunks])
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"Got {len(chunks)} chunks but {len(embeddings)} embeddings"
            )

        collection = None
        if chunks:
            collection = await asyncio.to_thread(
                _create_collection, chunks, embeddings,
            )

        logger.info("Built retrieval index over %d chunks", len(chunks))
        return cls(chunks, embedder, collection)

    @property
    def chunks(self) -> tuple[Chunk, ...]:
        """The backing chunk list (document order), used for lexical search."""
        return self._chunks

    def __len__(self) -> int:
        return len(self._chunks)

    async def similarity_search(
        self,
        query: str,
        top_k: int = 4,
    ) -> list[VectorSearchResult]:
        """Return up to top_k chunks nearest to the query, best first."""
        if self._collection is None or top_k <= 0:
            return []

        query_embedding = await embed_query(self._embedder, query)

        # drop() may have run while the query was being embedded
        collection = self._collection
        if collection is None:
            return []
        n_results = min(top_k, len(self._chunks))

        def _sync_search() -> list[VectorSearchResult]:
            results = collection.query(
                query_embeddings=[query_embedding],
                n_results=n_results,
                include=["distances"],
            )

            hits: list[VectorSearchResult] = []
            if results and results["ids"] and results["ids"][0]:
                distances = results["distances"][0] if results["distances"] else []
                for i, chunk_id in enumerate(results["ids"][0]):
                    distance = distances[i] if i < len(distances) else 0.0
                    hits.append(VectorSearchResult(
                        chunk=self._by_id[chunk_id],
                        similarity_score=round(1.0 - distance, 4),
                    ))
            return hits

        return await asyncio.to_thread(_sync_search)

    def drop(self) -> None:
        """Release the backing collection. The index is unusable afterwards."""
        collection, self._collection = self._collection, None
        if collection is not None:
            _get_client().delete_collection(collection.name)
            logger.debug("Dropped retrieval index collection")
