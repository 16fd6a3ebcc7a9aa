# =============================================================================
# Planner Agent — Retrieval and Analysis Plan
# =============================================================================
#
# Translates a work unit (report section or question) plus recent ledger
# context into a Plan: the queries the researcher runs, the focus areas the
# analyst covers, and the deterministic tools to apply.
#
# DESIGN DECISION: Parse-or-default, never trust the JSON.
# The completion is asked for strict JSON, but the outermost {...} span is
# validated through a Pydantic model. Anything unusable (no braces, invalid
# JSON, wrong types, no retrieval queries) raises PlanParseError internally
# and a deterministic default plan built from the work unit is substituted.
# The pipeline never halts on malformed planning output.
# =============================================================================

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from finanalyzer.agents.units import WorkUnit
from finanalyzer.errors import PlanParseError
from finanalyzer.services.ledger import ConversationLedger
from finanalyzer.services.llm import LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_TOOLS = ["numeric_summary", "keyword_coverage"]


class Plan(BaseModel):
    """
    Structured intent for one work unit. Immutable; every list is non-null.

    Accepts the camelCase keys the planner prompt asks for, or snake_case.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    objective: str = ""
    retrieval_queries: list[str] = Field(default_factory=list, alias="retrievalQueries")
    fallback_queries: list[str] = Field(default_factory=list, alias="fallbackQueries")
    analysis_focus: list[str] = Field(default_factory=list, alias="analysisFocus")
    sub_questions: list[str] = Field(default_factory=list, alias="subQuestions")
    tool_suggestions: list[str] = Field(default_factory=list, alias="toolSuggestions")

    @field_validator("objective", mode="before")
    @classmethod
    def _coerce_objective(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator(
        "retrieval_queries",
        "fallback_queries",
        "analysis_focus",
        "sub_questions",
        "tool_suggestions",
        mode="before",
    )
    @classmethod
    def _coerce_string_list(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValueError("expected a list of strings")
        return [
            str(item).strip()
            for item in value
            if item is not None and not isinstance(item, (dict, list)) and str(item).strip()
        ]

    def summary(self) -> dict[str, Any]:
        """The parts of the plan the analyst sees."""
        return {
            "objective": self.objective,
            "subQuestions": self.sub_questions,
            "analysisFocus": self.analysis_focus,
        }


@dataclass
class PlannerResult:
    plan: Plan
    raw: str  # literal completion text, recorded in the ledger
    used_default: bool = False


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_PLANNER_SYSTEM = (
    "You are the PLANNER agent coordinating an agentic retrieval-augmented "
    "generation workflow for financial analysis.\n"
    "You must reason step-by-step and respond ONLY with strict JSON "
    "describing the plan."
)

_PLAN_SCHEMA = """{
  "objective": string,
  "retrievalQueries": string[],
  "fallbackQueries": string[],
  "analysisFocus": string[],
  "subQuestions": string[],
  "toolSuggestions": string[]
}"""


def build_planner_prompt(unit: WorkUnit, ledger_context: str) -> str:
    if unit.is_report:
        task = (
            f'Task: Develop a retrieval and analysis plan for the '
            f'"{unit.section_title}" section about {unit.company_name}.\n'
            "Focus on tailored search queries, sub-questions, and data "
            "requirements specific to that section."
        )
    else:
        task = (
            f"Task: Develop a retrieval and analysis plan to answer the "
            f'question about {unit.company_name}: "{unit.question}".\n'
            "Determine necessary sub-questions, retrieval strategies, and "
            "validation needs."
        )

    return (
        f"{task}\n\n"
        f"Previous context:\n{ledger_context}\n\n"
        f"Return JSON with this schema:\n{_PLAN_SCHEMA}\n"
        "Make retrieval queries diverse (semantic, keyword, time-focused).\n"
        f"Available tools: {', '.join(DEFAULT_TOOLS)}."
    )


# ---------------------------------------------------------------------------
# Parse-or-default
# ---------------------------------------------------------------------------


def parse_plan(raw: str | None) -> Plan:
    """
    Parse the outermost {...} span of a completion into a Plan.

    Raises:
        PlanParseError: If no usable plan can be recovered.
    """
    if not raw:
        raise PlanParseError("Planner returned no content")

    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise PlanParseError("No JSON braces detected")

    try:
        payload = json.loads(raw[start : end + 1])
    except (ValueError, RecursionError) as e:
        # JSONDecodeError, oversized integers and runaway nesting
        raise PlanParseError(f"Invalid plan JSON: {e}") from e

    if not isinstance(payload, dict) or not payload:
        raise PlanParseError("Plan JSON is not a non-empty object")

    try:
        plan = Plan.model_validate(payload)
    except (ValidationError, ValueError, RecursionError) as e:
        raise PlanParseError(f"Plan failed validation: {e}") from e

    if not plan.retrieval_queries:
        raise PlanParseError("Plan has no retrieval queries")
    return plan


def default_plan(unit: WorkUnit) -> Plan:
    """Deterministic plan built only from the work unit's fields."""
    company = unit.company_name
    if unit.is_report:
        section = unit.section_title
        return Plan(
            objective=f"Summarize {section} insights for {company}",
            retrieval_queries=[
                f"{company} {section} section core themes",
                f"{company} {section} highlights recent",
            ],
            fallback_queries=[
                f"{company} {section} risks",
                f"{company} {section} forward guidance",
            ],
            analysis_focus=[f"Key talking points for {section}"],
            sub_questions=[],
            tool_suggestions=list(DEFAULT_TOOLS),
        )

    question = unit.question or ""
    return Plan(
        objective=(
            f"Answer the question using primary facts from {company}'s "
            "financial document"
        ),
        retrieval_queries=[question, f"{company} {question}"],
        fallback_queries=[
            f"{company} details {question}",
            f"{company} discussion {question}",
        ],
        analysis_focus=["Provide direct answer grounded in evidence"],
        sub_questions=[question],
        tool_suggestions=list(DEFAULT_TOOLS),
    )


def resolve_plan(raw: str | None, unit: WorkUnit) -> tuple[Plan, bool]:
    """Return (plan, used_default). Never raises."""
    try:
        return parse_plan(raw), False
    except PlanParseError as e:
        logger.warning(
            "Planner output unusable (%s); using default plan for %s",
            e, unit.section or "question",
        )
        return default_plan(unit), True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def plan_work(
    unit: WorkUnit,
    ledger: ConversationLedger,
    llm: LLMProvider,
) -> PlannerResult:
    """
    Ask the LLM for a plan and resolve it (parse or default).

    ProviderError from the completion call propagates.
    """
    prompt = build_planner_prompt(unit, ledger.format_for_prompt())
    response = await llm.complete(
        messages=[{"role": "user", "content": prompt}],
        system=_PLANNER_SYSTEM,
        temperature=0.2,
        max_tokens=320,
    )

    plan, used_default = resolve_plan(response.content, unit)
    logger.info(
        "Plan ready: %d retrieval queries, %d fallback queries, tools=%s%s",
        len(plan.retrieval_queries),
        len(plan.fallback_queries),
        plan.tool_suggestions,
        " (default)" if used_default else "",
    )
    return PlannerResult(plan=plan, raw=response.content, used_default=used_default)
