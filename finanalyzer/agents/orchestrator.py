# =============================================================================
# Orchestrator — Mode Selection, Allow-List, One-Hop Fallback
# =============================================================================
#
# Single entry point for "generate a report" and "answer a question". The
# caller names a mode (or none); the orchestrator picks the pipeline,
# enforces the enabled-mode allow-list, and attaches metadata.
#
# MODE RESOLUTION:
#   absent / unknown mode  → default mode (logged, not an error)
#   resolved mode disabled → ConfigurationError listing the allowed modes
#
# FALLBACK:
#   A pipeline may declare a `fallback_mode`. When it raises ProviderError
#   and that fallback mode is enabled, the same inputs are re-run once on
#   the fallback pipeline and the result is tagged with
#   fallback / original_mode / fallback_reason. A failure of the fallback
#   pipeline propagates unchanged. There is never a second hop.
#
#   specialized-agent → coordinated
#   coordinated       → (none)
#
# DESIGN DECISION: Registry of pipelines behind one Protocol.
# Adding a mode means registering another object with run_report /
# run_question; nothing in this module changes.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol, TypeVar

from finanalyzer.agents.coordinated import CoordinatedPipeline
from finanalyzer.agents.specialized import SpecializedAgentPipeline
from finanalyzer.agents.units import PipelineReport, ReportSections
from finanalyzer.config import settings
from finanalyzer.errors import ConfigurationError, ProviderError
from finanalyzer.services.ledger import LedgerStore
from finanalyzer.services.vectorstore import RetrievalIndex

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Pipeline(Protocol):
    """What the orchestrator needs from a pipeline variant."""

    mode: str
    name: str
    description: str
    fallback_mode: str | None

    async def run_report(self, document_text: str, company_name: str) -> PipelineReport:
        ...

    async def run_question(
        self,
        index: RetrievalIndex,
        question: str,
        company_name: str,
    ) -> str:
        ...


@dataclass
class GenerationMetadata:
    """
    Where a result came from.

    `mode` and `strategy_name` describe the pipeline that actually produced
    the output; the fallback fields are set only when a retry happened.
    """

    mode: str
    strategy_name: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    fallback: bool = False
    original_mode: str | None = None
    fallback_reason: str | None = None


@dataclass
class ReportResult:
    sections: ReportSections
    metadata: GenerationMetadata
    index: RetrievalIndex


@dataclass
class AnswerResult:
    answer: str
    metadata: GenerationMetadata


@dataclass
class ModeInfo:
    mode: str
    name: str
    description: str
    enabled: bool


class Orchestrator:
    def __init__(
        self,
        pipelines: Iterable[Pipeline],
        default_mode: str,
        enabled_modes: Sequence[str],
    ) -> None:
        self._pipelines: dict[str, Pipeline] = {p.mode: p for p in pipelines}
        self._enabled = [mode for mode in enabled_modes if mode in self._pipelines]

        unknown = [mode for mode in enabled_modes if mode not in self._pipelines]
        if unknown:
            logger.warning("Ignoring unknown enabled modes: %s", unknown)
        if default_mode not in self._pipelines:
            raise ConfigurationError(
                f"Default mode '{default_mode}' is not a known mode",
                allowed_modes=list(self._enabled),
            )
        self._default_mode = default_mode

    @property
    def default_mode(self) -> str:
        return self._default_mode

    @property
    def enabled_modes(self) -> list[str]:
        return list(self._enabled)

    def is_enabled(self, mode: str) -> bool:
        return mode in self._enabled

    def resolve_mode(self, mode: str | None) -> str:
        """
        Map a requested mode to the mode that will run.

        Raises:
            ConfigurationError: If the resolved mode is not enabled.
        """
        resolved = mode
        if not mode or mode not in self._pipelines:
            if mode:
                logger.warning(
                    "Unknown mode '%s', using default '%s'", mode, self._default_mode,
                )
            resolved = self._default_mode

        if not self.is_enabled(resolved):
            raise ConfigurationError(
                f"Mode '{resolved}' is not enabled. "
                f"Allowed modes: {', '.join(self._enabled) or 'none'}",
                allowed_modes=list(self._enabled),
            )
        return resolved

    def list_modes(self) -> list[ModeInfo]:
        return [
            ModeInfo(
                mode=p.mode,
                name=p.name,
                description=p.description,
                enabled=self.is_enabled(p.mode),
            )
            for p in self._pipelines.values()
        ]

    # -----------------------------------------------------------------------
    # Entry points
    # -----------------------------------------------------------------------

    async def generate_report(
        self,
        document_text: str,
        company_name: str,
        mode: str | None = None,
    ) -> ReportResult:
        resolved = self.resolve_mode(mode)
        logger.info("Generating report for '%s' with mode '%s'", company_name, resolved)

        report, metadata = await self._run_with_fallback(
            resolved,
            lambda p: p.run_report(document_text, company_name),
        )
        return ReportResult(sections=report.sections, metadata=metadata, index=report.index)

    async def answer_question(
        self,
        index: RetrievalIndex,
        question: str,
        company_name: str,
        mode: str | None = None,
    ) -> AnswerResult:
        resolved = self.resolve_mode(mode)
        logger.info("Answering question for '%s' with mode '%s'", company_name, resolved)

        answer, metadata = await self._run_with_fallback(
            resolved,
            lambda p: p.run_question(index, question, company_name),
        )
        return AnswerResult(answer=answer, metadata=metadata)

    async def _run_with_fallback(
        self,
        mode: str,
        call: Callable[[Pipeline], Awaitable[T]],
    ) -> tuple[T, GenerationMetadata]:
        pipeline = self._pipelines[mode]
        try:
            result = await call(pipeline)
            return result, GenerationMetadata(mode=mode, strategy_name=pipeline.name)
        except ProviderError as e:
            fallback_mode = pipeline.fallback_mode
            if not fallback_mode or not self.is_enabled(fallback_mode):
                raise
            logger.warning(
                "Mode '%s' failed (%s); falling back to '%s'", mode, e, fallback_mode,
            )
            reason = str(e)

        # One hop only: errors from the fallback pipeline propagate as-is.
        fallback = self._pipelines[fallback_mode]
        result = await call(fallback)
        return result, GenerationMetadata(
            mode=fallback_mode,
            strategy_name=fallback.name,
            fallback=True,
            original_mode=mode,
            fallback_reason=reason,
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_orchestrator: Orchestrator | None = None


def build_orchestrator(ledgers: LedgerStore | None = None) -> Orchestrator:
    """Build an orchestrator over both pipeline variants from settings."""
    return Orchestrator(
        pipelines=[
            CoordinatedPipeline(ledgers or LedgerStore()),
            SpecializedAgentPipeline(),
        ],
        default_mode=settings.default_rag_mode,
        enabled_modes=settings.enabled_modes,
    )


def get_orchestrator() -> Orchestrator:
    """Lazy process-wide orchestrator (one shared LedgerStore)."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator
