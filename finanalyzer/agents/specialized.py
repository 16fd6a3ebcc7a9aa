# =============================================================================
# Specialized-Agent Pipeline — One Persona per Report Section
# =============================================================================
#
# A coarser alternative to the coordinated pipeline: no planner, no
# validator, no ledger. Each report section is owned by a fixed persona
# (role + expertise + temperature) and answered from a fixed, hand-written
# retrieval query.
#
#   overview               → researcher    (0.1)
#   financial_highlights   → analyst       (0.2)
#   key_risks              → riskAssessor  (0.15)
#   management_commentary  → strategist    (0.2)
#
# DESIGN DECISION: Structured concurrency for the four sections.
# The sections have no ordering dependency, so they run as four tasks in an
# asyncio.TaskGroup. The first failure cancels the siblings and is re-raised
# as-is (not wrapped in an ExceptionGroup) so the orchestrator can recognise
# a ProviderError and fall back.
#
# DESIGN DECISION: Different text preparation.
# Bare page-number lines are also stripped, and chunks are larger with more
# overlap, since each persona sees top-5 chunks and nothing else.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from finanalyzer.agents.units import (
    SECTION_ORDER,
    PipelineReport,
    ReportSections,
)
from finanalyzer.config import settings
from finanalyzer.services.chunker import SPECIALIST_CLEANING, prepare_chunks
from finanalyzer.services.embedder import Embedder, get_embedder
from finanalyzer.services.llm import LLMProvider, get_llm_provider
from finanalyzer.services.normalizer import format_report_bullets, normalize_answer
from finanalyzer.services.vectorstore import RetrievalIndex

logger = logging.getLogger(__name__)

SECTION_TOP_K = 5
QUESTION_TOP_K = 4
SECTION_MAX_TOKENS = 600
QUESTION_MAX_TOKENS = 400
QUESTION_TEMPERATURE = 0.25

EMPTY_SECTION = "Analysis not available"
EMPTY_ANSWER = "Unable to answer the question."


@dataclass(frozen=True)
class Persona:
    key: str
    role: str
    expertise: str
    temperature: float

    @property
    def system_prompt(self) -> str:
        return (
            f"You are a {self.role} specializing in {self.expertise}. "
            "Provide detailed, professional analysis. Use plain text with "
            "bullet points (•) for lists."
        )


PERSONAS: dict[str, Persona] = {
    "researcher": Persona(
        "researcher", "Financial Researcher",
        "Extracting and organizing financial data", 0.1,
    ),
    "analyst": Persona(
        "analyst", "Financial Analyst",
        "Analyzing trends and metrics", 0.2,
    ),
    "riskAssessor": Persona(
        "riskAssessor", "Risk Assessment Specialist",
        "Identifying and evaluating risks", 0.15,
    ),
    "strategist": Persona(
        "strategist", "Strategic Advisor",
        "Interpreting management strategy and outlook", 0.2,
    ),
}



@dataclass(frozen=True)
class SectionBrief:
    """Who writes a section, what they search for, and what they must cover."""

    persona: str
    query: str
    task: str
    points: tuple[str, ...]

    def build_query(self, company_name: str) -> str:
        return self.query.format(company=company_name)

    def build_prompt(self, company_name: str, snippets: list[str]) -> str:
        evidence = "\n\n".join(snippets)
        points = "\n".join(f"• {point}" for point in self.points)
        return (
            f"{self.task.format(company=company_name)}\n\n"
            f"Relevant Information:\n{evidence}\n\n"
            f"{points}"
        )


SECTION_BRIEFS: dict[str, SectionBrief] = {
    "overview": SectionBrief(
        persona="researcher",
        query="{company} business model operations strategy company information",
        task=(
            "As a Financial Researcher, provide a comprehensive company "
            "overview for {company}.\nInclude:"
        ),
        points=(
            "Business model and core operations",
            "Market position and competitive landscape",
            "Strategic initiatives and recent developments",
            "Geographic presence and key markets",
            "Organizational structure and key leadership",
        ),
    ),
    "financial_highlights": SectionBrief(
        persona="analyst",
        query="{company} revenue profit financial performance metrics ratios",
        task=(
            "As a Financial Analyst, analyze the financial performance of "
            "{company}.\nProvide detailed analysis of:"
        ),
        points=(
            "Revenue trends and growth rates",
            "Profitability metrics (margins, EBITDA, net income)",
            "Key financial ratios and their implications",
            "Cash flow analysis and liquidity position",
            "Year-over-year and quarter-over-quarter comparisons",
            "Balance sheet strength",
        ),
    ),
    "key_risks": SectionBrief(
        persona="riskAssessor",
        query="{company} risks challenges threats concerns issues problems",
        task=(
            "As a Risk Assessment Specialist, identify and evaluate risks for "
            "{company}.\nAnalyze:"
        ),
        points=(
            "Business and operational risks",
            "Financial risks (debt, liquidity, currency)",
            "Market and competitive risks",
            "Regulatory and compliance risks",
            "Strategic and execution risks",
            "External factors (economic, geopolitical)",
        ),
    ),
    "management_commentary": SectionBrief(
        persona="strategist",
        query="{company} management outlook guidance strategy future plans vision",
        task=(
            "As a Strategic Advisor, interpret management's perspective for "
            "{company}.\nSummarize:"
        ),
        points=(
            "Executive commentary on performance",
            "Strategic priorities and initiatives",
            "Forward-looking statements and guidance",
            "Management's view on challenges and opportunities",
            "Capital allocation strategy",
            "Long-term vision and goals",
        ),
    ),
}

_COORDINATOR_SYSTEM = (
    "You are a Financial Analysis Coordinator who synthesizes insights from "
    "multiple specialized agents."
)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class SpecializedAgentPipeline:
    """Four persona agents, one per section, generated concurrently."""

    mode = "specialized-agent"
    name = "Specialized Agents"
    description = "Specialized agents for deeper, more nuanced analysis"
    fallback_mode: str | None = "coordinated"

    def __init__(
        self,
        llm: LLMProvider | None = None,
        embedder: Embedder | None = None,
    ) -> None:
        self._llm = llm
        self._embedder = embedder

    @property
    def llm(self) -> LLMProvider:
        return self._llm or get_llm_provider()

    @property
    def embedder(self) -> Embedder:
        return self._embedder or get_embedder()

    async def prepare_index(self, document_text: str) -> RetrievalIndex:
        chunks = prepare_chunks(
            document_text,
            SPECIALIST_CLEANING,
            settings.specialized_chunk_size,
            settings.specialized_chunk_overlap,
        )
        return await RetrievalIndex.build(chunks, self.embedder)

    async def run_section(
        self,
        section: str,
        index: RetrievalIndex,
        company_name: str,
    ) -> str:
        """Retrieve for one section and have its persona write it."""
        brief = SECTION_BRIEFS[section]
        persona = PERSONAS[brief.persona]

        hits = await index.similarity_search(
            brief.build_query(company_name), top_k=SECTION_TOP_K,
        )
        snippets = [hit.chunk.text for hit in hits]

        logger.info(
            "Persona '%s' writing %s from %d chunks",
            persona.key, section, len(snippets),
        )
        response = await self.llm.complete(
            messages=[{
                "role": "user",
                "content": brief.build_prompt(company_name, snippets),
            }],
            system=persona.system_prompt,
            temperature=persona.temperature,
            max_tokens=SECTION_MAX_TOKENS,
        )
        return format_report_bullets(response.content) or f"• {EMPTY_SECTION}"

    async def run_report(self, document_text: str, company_name: str) -> PipelineReport:
        index = await self.prepare_index(document_text)
        logger.info("Deploying %d specialized agents for '%s'", len(SECTION_ORDER), company_name)

        try:
            async with asyncio.TaskGroup() as group:
                tasks = {
                    section: group.create_task(
                        self.run_section(section, index, company_name)
                    )
                    for section in SECTION_ORDER
                }
        except ExceptionGroup as eg:
            index.drop()
            first = eg.exceptions[0]
            logger.warning("Specialized agent failed: %s", first)
            raise first from None

        sections = {section: task.result() for section, task in tasks.items()}
        logger.info("All specialized agents completed for '%s'", company_name)
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
        hits = await index.similarity_search(question, top_k=QUESTION_TOP_K)
        evidence = "\n\n".join(hit.chunk.text for hit in hits)

        prompt = (
            f"As a Financial Analysis Coordinator, answer this question about "
            f"{company_name}:\n\n"
            f"Question: {question}\n\n"
            f"Relevant Information:\n{evidence}\n\n"
            "Answer in 2-3 sentences that:\n"
            "• Directly address the question\n"
            "• Cite specific information from the document\n"
            "• Acknowledge any limitations in the available data"
        )
        response = await self.llm.complete(
            messages=[{"role": "user", "content": prompt}],
            system=_COORDINATOR_SYSTEM,
            temperature=QUESTION_TEMPERATURE,
            max_tokens=QUESTION_MAX_TOKENS,
        )
        return normalize_answer(response.content) or EMPTY_ANSWER
