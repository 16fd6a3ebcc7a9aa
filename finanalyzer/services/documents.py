# =============================================================================
# Document Registry — Report Indexes Kept for Follow-Up Questions
# =============================================================================
#
# A generated report leaves behind its RetrievalIndex. The registry keeps it
# (plus the mode and company it was built for) under a random document id so
# POST /ask can answer questions without re-embedding the document.
#
# Memory only, bounded: the least recently used entry is evicted (and its
# Chroma collection dropped) once `max_cached_documents` is exceeded.
# =============================================================================

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from finanalyzer.config import settings
from finanalyzer.services.vectorstore import RetrievalIndex

logger = logging.getLogger(__name__)


@dataclass
class CachedDocument:
    index: RetrievalIndex
    mode: str
    company_name: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class DocumentRegistry:
    def __init__(self, max_documents: int | None = None) -> None:
        self._max_documents = max_documents or settings.max_cached_documents
        self._documents: OrderedDict[str, CachedDocument] = OrderedDict()

    def __len__(self) -> int:
        return len(self._documents)

    def add(self, index: RetrievalIndex, mode: str, company_name: str) -> str:
        document_id = uuid4().hex
        self._documents[document_id] = CachedDocument(
            index=index, mode=mode, company_name=company_name,
        )
        while len(self._documents) > self._max_documents:
            evicted_id, evicted = self._documents.popitem(last=False)
            evicted.index.drop()
            logger.info("Evicted cached document %s", evicted_id)
        return document_id

    def get(self, document_id: str) -> CachedDocument | None:
        cached = self._documents.get(document_id)
        if cached is not None:
            self._documents.move_to_end(document_id)
        return cached


_registry: DocumentRegistry | None = None


def get_document_registry() -> DocumentRegistry:
    """Process-wide registry (FastAPI dependency)."""
    global _registry
    if _registry is None:
        _registry = DocumentRegistry()
    return _registry
