# =============================================================================
# Tool Augmentation — Deterministic Analyzers (No LLM)
# =============================================================================
#
# A fixed registry of analyzers the plan may name in `tool_suggestions`.
# Outputs are descriptive aids for the analyst and are recorded in the
# ledger; they never change retrieval or planning. Unknown names are ignored.
#
#   numeric_summary  : up to 6 unique evidence lines containing a digit
#   keyword_coverage : occurrences of each analysis-focus term in evidence
# =============================================================================

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from finanalyzer.agents.planner import Plan

logger = logging.getLogger(__name__)

MAX_NUMERIC_LINES = 6


@dataclass
class ToolOutput:
    tool: str
    result: str


def numeric_lines(snippets: Sequence[str], limit: int = MAX_NUMERIC_LINES) -> list[str]:
    """Unique trimmed lines (first-seen order) containing at least one digit."""
    lines: list[str] = []
    for snippet in snippets:
        for line in re.split(r"\n+", snippet):
            line = line.strip()
            if re.search(r"\d", line) and line not in lines:
                lines.append(line)
    return lines[:limit]


def numeric_summary(snippets: Sequence[str], plan: Plan) -> str:
    lines = numeric_lines(snippets)
    if not lines:
        return "No explicit numeric highlights detected in retrieved context."
    return "Numeric highlights identified:\n" + "\n".join(lines)


def keyword_coverage_counts(
    snippets: Sequence[str],
    focus: Sequence[str],
) -> dict[str, int]:
    """Map each lowercase focus term to its literal occurrence count in the snippets."""
    terms = " ".join(focus).lower().split()
    text = " ".join(snippets).lower()
    return {term: len(re.findall(re.escape(term), text)) for term in terms}


def keyword_coverage(snippets: Sequence[str], plan: Plan) -> str:
    counts = keyword_coverage_counts(snippets, plan.analysis_focus)
    if not counts:
        return "No focus keywords provided by plan."
    return f"Keyword coverage counts: {json.dumps(counts)}"


TOOLKIT: dict[str, Callable[[Sequence[str], Plan], str]] = {
    "numeric_summary": numeric_summary,
    "keyword_coverage": keyword_coverage,
}


def apply_tools(snippets: Sequence[str], plan: Plan) -> list[ToolOutput]:
    """Run every known tool the plan names, in the order named."""
    outputs: list[ToolOutput] = []
    for name in plan.tool_suggestions:
        tool = TOOLKIT.get(name)
        if tool is None:
            logger.debug("Ignoring unknown tool '%s'", name)
            continue
        outputs.append(ToolOutput(tool=name, result=tool(snippets, plan)))
    return outputs
