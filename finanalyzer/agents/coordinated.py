# =============================================================================
# Coordinated Pipeline — LangGraph State Machine per Work Unit
# =============================================================================
#
# One graph run per work unit (a report section, or a question):
#
# GRAPH TOPOLOGY:
#   START ──▶ plan ──▶ research ──▶ tooling ──▶ draft ──▶ validate ──▶ format ──▶ END
#
#   PLANNING → RETRIEVING → TOOLING → DRAFTING → VALIDATING → FORMATTING → DONE
#
# Strictly sequential, no edges back. Each node appends what it produced to
# the company's ConversationLedger (tooling appends one entry per tool
# output), so later stages and later requests see it as context.
#
# DESIGN DECISION: Linear graph, loops live inside nodes.
# The only "retry" behaviours (retrieval escalation, validator repair) are
# bounded to a single extra round and happen inside their node. The graph
# itself stays a straight line.
#
# DESIGN DECISION: Graph compiled once at module level.
# Compiling is not free; the compiled graph is reusable across requests.
# Collaborators (index, ledger, llm) travel in the state. Not
# JSON-serialisable, which is fine as long as no checkpointer is configured.
#
# DESIGN DECISION: Report sections run one after another.
# All four sections of a report share one ledger session, and each section's
# planner sees the previous sections' entries as context.
# =============================================================================

from __future__ import annotations

import json
import logging
from enum import Enum

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from finanalyzer.agents.analyst import draft
from finanalyzer.agents.planner import Plan, plan_work
from finanalyzer.agents.researcher import RetrievedEvidence, research
from finanalyzer.agents.tools import ToolOutput, apply_tools
from finanalyzer.agents.units import (
    SECTION_ORDER,
    PipelineReport,
    ReportSections,
    WorkUnit,
)
from finanalyzer.agents.validator import ValidationOutcome, validate
from finanalyzer.config import settings
from finanalyzer.services.chunker import COORDINATED_CLEANING, prepare_chunks
from finanalyzer.services.embedder import Embedder, get_embedder
from finanalyzer.services.ledger import ConversationLedger, LedgerStore
from finanalyzer.services.llm import LLMProvider, get_llm_provider
from finanalyzer.services.normalizer import format_report_bullets, normalize_answer
from finanalyzer.services.vectorstore import RetrievalIndex

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    PLANNING = "planning"
    RETRIEVING = "retrieving"
    TOOLING = "tooling"
    DRAFTING = "drafting"
    VALIDATING = "validating"
    FORMATTING = "formatting"
    DONE = "done"


# ---------------------------------------------------------------------------
# State Schema
# ---------------------------------------------------------------------------


class PipelineState(TypedDict, total=False):
    """
    State flowing through the coordinated graph.

    total=False so each node returns only the keys it sets.
    """

    # --- Input (set by caller) ---
    unit: WorkUnit
    index: RetrievalIndex
    ledger: ConversationLedger
    llm: LLMProvider

    # --- Intermediate (set by nodes) ---
    stage: PipelineStage
    plan: Plan
    planner_raw: str
    used_default_plan: bool
    evidence: RetrievedEvidence
    tool_outputs: list[ToolOutput]
    draft: str
    validation: ValidationOutcome

    # --- Output (set by format node) ---
    output: str


# ---------------------------------------------------------------------------
# Node Functions
# ---------------------------------------------------------------------------


async def plan_node(state: PipelineState) -> dict:
    result = await plan_work(state["unit"], state["ledger"], state["llm"])
    state["ledger"].append(
        "planner",
        result.raw or json.dumps(result.plan.model_dump(by_alias=True)),
    )
    return {
        "stage": PipelineStage.RETRIEVING,
        "plan": result.plan,
        "planner_raw": result.raw,
        "used_default_plan": result.used_default,
    }


async def research_node(state: PipelineState) -> dict:
    evidence = await research(state["plan"], state["index"])
    target = "section" if state["unit"].is_report else "question"
    state["ledger"].append(
        "researcher",
        f"Retrieved {evidence.coverage_score} snippets for {target}.",
    )
    return {"stage": PipelineStage.TOOLING, "evidence": evidence}


async def tooling_node(state: PipelineState) -> dict:
    outputs = apply_tools(state["evidence"].snippets, state["plan"])
    for output in outputs:
        state["ledger"].append(f"tool:{output.tool}", output.result)
    return {"stage": PipelineStage.DRAFTING, "tool_outputs": outputs}


async def draft_node(state: PipelineState) -> dict:
    content = await draft(
        unit=state["unit"],
        plan=state["plan"],
        evidence=state["evidence"],
        tool_outputs=state.get("tool_outputs", []),
        ledger_context=state["ledger"].format_for_prompt(),
        llm=state["llm"],
    )
    state["ledger"].append("analyst", content)
    return {"stage": PipelineStage.VALIDATING, "draft": content}


async def validate_node(state: PipelineState) -> dict:
    outcome = await validate(
        unit=state["unit"],
        content=state["draft"],
        plan=state["plan"],
        evidence=state["evidence"],
        llm=state["llm"],
    )
    state["ledger"].append("validator", outcome.content)
    return {"stage": PipelineStage.FORMATTING, "validation": outcome}


async def format_node(state: PipelineState) -> dict:
    content = state["validation"].content
    if state["unit"].is_report:
        output = format_report_bullets(content)
    else:
        output = normalize_answer(content)
    state["ledger"].append("formatter", output)
    return {"stage": PipelineStage.DONE, "output": output}


# ---------------------------------------------------------------------------
# Graph Assembly
# ---------------------------------------------------------------------------

_builder = StateGraph(PipelineState)
_builder.add_node("plan", plan_node)
_builder.add_node("research", research_node)
_builder.add_node("tooling", tooling_node)
_builder.add_node("draft", draft_node)
_builder.add_node("validate", validate_node)
_builder.add_node("format", format_node)

_builder.add_edge(START, "plan")
_builder.add_edge("plan", "research")
_builder.add_edge("research", "tooling")
_builder.add_edge("tooling", "draft")
_builder.add_edge("draft", "validate")
_builder.add_edge("validate", "format")
_builder.add_edge("format", END)

graph = _builder.compile()


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class CoordinatedPipeline:
    """Planner → Researcher → Tools → Analyst → Validator → Formatter."""

    mode = "coordinated"
    name = "Coordinated Agentic RAG"
    description = (
        "Planner, researcher, tool, analyst, validator and formatter agents "
        "share one conversation ledger; hybrid retrieval with escalation."
    )
    fallback_mode: str | None = None

    def __init__(
        self,
        ledgers: LedgerStore,
        llm: LLMProvider | None = None,
        embedder: Embedder | None = None,
    ) -> None:
        self._ledgers = ledgers
        self._llm = llm
        self._embedder = embedder

    @property
    def llm(self) -> LLMProvider:
        return self._llm or get_llm_provider()

    @property
    def embedder(self) -> Embedder:
        return self._embedder or get_embedder()

    async def prepare_index(self, document_text: str) -> RetrievalIndex:
        """Clean, chunk and embed a document with the coordinated settings."""
        chunks = prepare_chunks(
            document_text,
            COORDINATED_CLEANING,
            settings.chunk_size,
            settings.chunk_overlap,
        )
        return await RetrievalIndex.build(chunks, self.embedder)

    async def run_unit(
        self,
        unit: WorkUnit,
        index: RetrievalIndex,
        ledger: ConversationLedger,
    ) -> str:
        """Run the graph once for one work unit and return the formatted text."""
        logger.info(
            "Coordinated run: kind=%s, section=%s, company='%s'",
            unit.kind, unit.section, unit.company_name,
        )
        initial_state: PipelineState = {
            "unit": unit,
            "index": index,
            "ledger": ledger,
            "llm": self.llm,
            "stage": PipelineStage.PLANNING,
        }
        result = await graph.ainvoke(initial_state)
        return result["output"]

    async def run_report(self, document_text: str, company_name: str) -> PipelineReport:
        index = await self.prepare_index(document_text)
        try:
            sections: dict[str, str] = {}
            async with self._ledgers.session(company_name) as ledger:
                for section in SECTION_ORDER:
                    unit = WorkUnit.for_section(section, company_name)
                    sections[section] = await self.run_unit(unit, index, ledger)
        except Exception:
            index.drop()
            raise

        logger.info("Coordinated report complete for '%s'", company_name)
        return PipelineReport(
            sections=ReportSections.from_mapping(sections),
            index=index,
        )

    async def run_question(
        self,
        index: RetrievalIndex,
        question: str,
        company_name: str,
    ) -> str:
        unit = WorkUnit.for_question(question, company_name)
        async with self._ledgers.session(company_name) as ledger:
            return await self.run_unit(unit, index, ledger)
