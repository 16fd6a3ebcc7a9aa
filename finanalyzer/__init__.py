# =============================================================================
# Financial Report Analyzer
# =============================================================================
# Turns an unstructured financial document into four structured report
# sections (overview, financial highlights, key risks, management commentary)
# and answers follow-up questions, using agentic RAG over document chunks.
#
# Package structure:
#   finanalyzer/
#   ├── api/          → FastAPI route handlers (report, ask, modes)
#   ├── agents/       → Pipeline stages (planner → researcher → tools →
#   │                    analyst → validator → formatter), the coordinated
#   │                    LangGraph pipeline, the specialized-agent pipeline,
#   │                    and the mode orchestrator
#   ├── models/       → Pydantic V2 request/response schemas
#   └── services/     → LLM + embedding adapters, chunking, retrieval index,
#                        lexical retrieval, output normalization, ledger,
#                        PDF text extraction, in-memory document registry
# =============================================================================
