# =============================================================================
# Agents Package — Pipelines and Mode Orchestration
# =============================================================================
# Coordinated pipeline stages, one module each:
#   - planner.py: work unit + ledger context → Plan (strict JSON, default on failure)
#   - researcher.py: hybrid semantic + lexical retrieval with escalation
#   - tools.py: deterministic analyzers named by the plan
#   - analyst.py: section- or question-specific first draft
#   - validator.py: one-shot format check + single corrective completion
# Pipelines:
#   - coordinated.py: LangGraph state machine, plan → ... → format
#   - specialized.py: persona-per-section pipeline, sections run concurrently
# Entry point:
#   - orchestrator.py: mode resolution, allow-list, one-hop fallback
# =============================================================================
