# =============================================================================
# Analyst Agent — First Draft per Work Unit
# =============================================================================
#
# Turns the plan summary, tool outputs, evidence and ledger context into a
# draft. No parsing happens here: formatting deviations are the validator's
# job.
#
# DESIGN DECISION: Section-specific guidance.
# Each report section has its own instruction block (what to include, what
# to exclude, bullet-only plain text). Questions get one generic 2-3
# sentence instruction.
# =============================================================================

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from finanalyzer.agents.planner import Plan
from finanalyzer.agents.researcher import RetrievedEvidence
from finanalyzer.agents.tools import ToolOutput
from finanalyzer.agents.units import WorkUnit
from finanalyzer.services.llm import LLMProvider
from finanalyzer.services.normalizer import limit_text

logger = logging.getLogger(__name__)

EVIDENCE_CHAR_LIMIT = 6000

_BULLET_RULE = (
    "- Output MUST be plain text bullet points using the • symbol, with each "
    "point on a separate line."
)

SECTION_GUIDANCE: dict[str, str] = {
    "overview": (
        "You are an expert financial analyst. Provide a concise overview of "
        "the company's business model and strategic positioning.\n"
        "- Focus on core operations, strategic priorities, and competitive "
        "advantages.\n"
        "- Exclude specific financial numbers or third-party opinions.\n"
        f"{_BULLET_RULE}\n"
        "- Do NOT use markdown formatting like headers or bold text."
    ),
    "financial_highlights": (
        "You are analyzing recent financial performance.\n"
        "- Highlight the most important financial metrics and trends "
        "(revenue, profit, margins, operational metrics).\n"
        "- Each bullet should be a full sentence describing the trend, "
        "including specific numbers when available.\n"
        f"{_BULLET_RULE}\n"
        "- Do NOT combine multiple facts in one bullet. No markdown formatting."
    ),
    "key_risks": (
        "You are identifying key risks that could affect the company.\n"
        "- Group risks logically (market, operational, financial, regulatory) "
        "when possible.\n"
        "- Summaries should explain the potential negative impact in one "
        "sentence.\n"
        "- Exclude mitigation strategies or management plans.\n"
        f"{_BULLET_RULE}\n"
        "- Do NOT use markdown formatting."
    ),
    "management_commentary": (
        "You are summarizing management's forward-looking perspective.\n"
        "- Focus on growth initiatives, strategic plans, market outlook, and "
        "future priorities.\n"
        "- Exclude financial results, historic metrics, or risk duplication.\n"
        f"{_BULLET_RULE}\n"
        "- Do NOT use markdown formatting."
    ),
}

QUESTION_GUIDANCE = (
    "Provide a precise answer (2-3 sentences) to the user question using only "
    "the retrieved evidence. Mention if information is unavailable."
)

_REPORT_SYSTEM = (
    "You are the ANALYST agent synthesizing financial document insights into "
    "bullet points."
)
_QUESTION_SYSTEM = (
    "You are the ANALYST agent answering financial questions concisely with "
    "evidence-backed statements."
)


def build_analyst_prompt(
    unit: WorkUnit,
    plan: Plan,
    evidence: RetrievedEvidence,
    tool_outputs: Sequence[ToolOutput],
    ledger_context: str,
) -> str:
    guidance = (
        SECTION_GUIDANCE[unit.section] if unit.is_report else QUESTION_GUIDANCE
    )
    tool_summary = (
        "\n".join(f"Tool[{t.tool}]: {t.result}" for t in tool_outputs)
        if tool_outputs
        else "No tool outputs available."
    )

    return (
        f"Company: {unit.company_name}\n"
        f"Mode: {unit.kind}\n"
        f"Section: {unit.section_title}\n"
        f"Question: {unit.question or 'N/A'}\n"
        f"Plan Summary: {json.dumps(plan.summary())}\n"
        f"Guidance: {guidance}\n\n"
        f"Previous context:\n{ledger_context}\n\n"
        f"Tool Outputs:\n{tool_summary}\n\n"
        f"Retrieved Evidence:\n"
        f"{limit_text(evidence.aggregated_text, EVIDENCE_CHAR_LIMIT)}\n\n"
        "Produce the required response now."
    )


async def draft(
    unit: WorkUnit,
    plan: Plan,
    evidence: RetrievedEvidence,
    tool_outputs: Sequence[ToolOutput],
    ledger_context: str,
    llm: LLMProvider,
) -> str:
    """Generate the raw first-draft text for a work unit."""
    prompt = build_analyst_prompt(unit, plan, evidence, tool_outputs, ledger_context)

    logger.info(
        "Analyst drafting: kind=%s, section=%s, snippets=%d",
        unit.kind, unit.section, evidence.coverage_score,
    )

    response = await llm.complete(
        messages=[{"role": "user", "content": prompt}],
        system=_REPORT_SYSTEM if unit.is_report else _QUESTION_SYSTEM,
        temperature=0.2,
        max_tokens=520 if unit.is_report else 220,
    )
    return response.content
