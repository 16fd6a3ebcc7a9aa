# =============================================================================
# Work Units and Report Types — Shared by Both Pipelines
# =============================================================================

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Literal

from finanalyzer.services.vectorstore import RetrievalIndex

# Report sections, in the order the coordinated pipeline generates them.
SECTION_ORDER: tuple[str, ...] = (
    "overview",
    "financial_highlights",
    "key_risks",
    "management_commentary",
)

SECTION_TITLES: dict[str, str] = {
    "overview": "Overview",
    "financial_highlights": "Financial Highlights",
    "key_risks": "Key Risks",
    "management_commentary": "Management Commentary",
}


@dataclass(frozen=True)
class WorkUnit:
    """One report section, or one question, for one company."""

    kind: Literal["report", "question"]
    company_name: str
    section: str | None = None
    question: str | None = None

    @classmethod
    def for_section(cls, section: str, company_name: str) -> WorkUnit:
        if section not in SECTION_ORDER:
            raise ValueError(f"Unknown report section '{section}'")
        return cls(kind="report", company_name=company_name, section=section)

    @classmethod
    def for_question(cls, question: str, company_name: str) -> WorkUnit:
        return cls(kind="question", company_name=company_name, question=question)

    @property
    def is_report(self) -> bool:
        return self.kind == "report"

    @property
    def section_title(self) -> str:
        return SECTION_TITLES.get(self.section or "", "N/A")


@dataclass
class ReportSections:
    overview: str
    financial_highlights: str
    key_risks: str
    management_commentary: str

    @classmethod
    def from_mapping(cls, sections: dict[str, str]) -> ReportSections:
        return cls(**{name: sections[name] for name in SECTION_ORDER})

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass
class PipelineReport:
    """What a pipeline hands back for a report: the sections plus the index it built."""

    sections: ReportSections
    index: RetrievalIndex
