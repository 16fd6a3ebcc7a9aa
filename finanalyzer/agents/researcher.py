# =============================================================================
# Researcher Agent — Hybrid Retrieval with Escalation
# =============================================================================
#
# ALGORITHM:
# 1. Semantic top-4 search for every retrieval query
# 2. Lexical top-4 search over all retrieval queries' keywords
# 3. Merge, dedupe by 160-char content prefix
# 4. ESCALATE: fewer than 3 chunks → repeat with the fallback queries
#    (top-3 semantic each, top-3 lexical) and dedupe again
# 5. Keep the first 8 chunks as evidence
#
# The escalation rule is a recall backstop for sparse or oddly-worded
# documents, not a correctness guarantee. coverage_score is reported for
# observability only.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass

from finanalyzer.agents.planner import Plan
from finanalyzer.services.retrieval import (
    dedupe_by_signature,
    lexical_search,
    semantic_search,
)
from finanalyzer.services.vectorstore import RetrievalIndex

logger = logging.getLogger(__name__)

SEMANTIC_TOP_K = 4
LEXICAL_LIMIT = 4
FALLBACK_TOP_K = 3
FALLBACK_LEXICAL_LIMIT = 3
MIN_EVIDENCE_CHUNKS = 3
MAX_SNIPPETS = 8
EVIDENCE_SEPARATOR = "\n---\n"


@dataclass
class RetrievedEvidence:
    snippets: list[str]
    aggregated_text: str
    escalated: bool = False

    @property
    def coverage_score(self) -> int:
        return len(self.snippets)


async def research(plan: Plan, index: RetrievalIndex) -> RetrievedEvidence:
    """Gather deduplicated evidence for a plan from the index."""
    queries = [q for q in plan.retrieval_queries if q]

    semantic = await semantic_search(index, queries, top_k=SEMANTIC_TOP_K)
    lexical = lexical_search(index.chunks, queries, limit=LEXICAL_LIMIT)
    combined = dedupe_by_signature([*semantic, *lexical])

    escalated = False
    if len(combined) < MIN_EVIDENCE_CHUNKS and plan.fallback_queries:
        logger.info(
            "Only %d evidence chunks; escalating to %d fallback queries",
            len(combined), len(plan.fallback_queries),
        )
        escalated = True
        fallback_semantic = await semantic_search(
            index, plan.fallback_queries, top_k=FALLBACK_TOP_K,
        )
        fallback_lexical = lexical_search(
            index.chunks, plan.fallback_queries, limit=FALLBACK_LEXICAL_LIMIT,
        )
        combined = dedupe_by_signature(
            [*combined, *fallback_semantic, *fallback_lexical]
        )

    snippets = [chunk.text.strip() for chunk in combined[:MAX_SNIPPETS]]

    logger.info(
        "Research complete: %d snippets (semantic=%d, lexical=%d, escalated=%s)",
        len(snippets), len(semantic), len(lexical), escalated,
    )
    return RetrievedEvidence(
        snippets=snippets,
        aggregated_text=EVIDENCE_SEPARATOR.join(snippets),
        escalated=escalated,
    )
