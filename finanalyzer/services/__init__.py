# =============================================================================
# Services Package — Shared Infrastructure
# =============================================================================
# Primitives consumed by both pipeline variants:
#   - llm.py: Multi-provider completion abstraction (Anthropic, OpenAI-compatible)
#   - embedder.py: Batch embedding generation (OpenAI-compatible API)
#   - chunker.py: Text cleaning + token-based chunking (tiktoken)
#   - vectorstore.py: RetrievalIndex: in-process ChromaDB similarity search
#   - retrieval.py: Lexical scoring, multi-query search, prefix dedup
#   - normalizer.py: Deterministic bullet / answer normalization
#   - ledger.py: Bounded per-company conversation ledger
#   - extraction.py: PDF → text with Docling
#   - documents.py: In-memory registry of report indexes for follow-up Q&A
# =============================================================================
