# =============================================================================
# Validator Agent — Single-Pass Check and Repair
# =============================================================================
#
# Checks (report):   every non-blank line starts with "• ";
#                    no markdown characters (* # _ `)
# Checks (question): 1 to 4 sentences (naive split on . ! ?)
# Checks (both):     non-empty
#
# Clean drafts pass through untouched. Otherwise ONE corrective completion
# is issued with the issue list, the draft and the evidence, and its output
# replaces the draft WITHOUT re-validation. Retries are bounded to exactly
# one round per work unit; the formatter normalizes whatever comes back.
# =============================================================================

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from finanalyzer.agents.planner import Plan
from finanalyzer.agents.researcher import RetrievedEvidence
from finanalyzer.agents.units import WorkUnit
from finanalyzer.services.llm import LLMProvider
from finanalyzer.services.normalizer import BULLET, limit_text

logger = logging.getLogger(__name__)

MIN_SENTENCES = 1
MAX_SENTENCES = 4
REPAIR_EVIDENCE_CHARS = 4000

_MARKDOWN_RE = re.compile(r"[*#_`]")


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str


EMPTY_CONTENT = ValidationIssue("empty", "Empty content generated.")
BULLET_FORMAT = ValidationIssue("bullets", 'All lines must begin with "• " bullet.')
MARKDOWN = ValidationIssue("markdown", "Content must not use markdown formatting.")
ANSWER_LENGTH = ValidationIssue(
    "length", "Answer must be concise (2-3 sentences ideally).",
)


@dataclass
class ValidationOutcome:
    content: str
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def repaired(self) -> bool:
        return bool(self.issues)


def count_sentences(content: str) -> int:
    collapsed = re.sub(r"\s+", " ", content)
    return sum(1 for part in re.split(r"[.!?]+", collapsed) if part.strip())


def check_content(unit: WorkUnit, content: str) -> list[ValidationIssue]:
    """Return every rule the draft violates (empty list when clean)."""
    issues: list[ValidationIssue] = []
    if not content or not content.strip():
        issues.append(EMPTY_CONTENT)

    if unit.is_report:
        lines = [line.strip() for line in (content or "").split("\n") if line.strip()]
        if any(not line.startswith(BULLET) for line in lines):
            issues.append(BULLET_FORMAT)
        if _MARKDOWN_RE.search((content or "").replace("•", "")):
            issues.append(MARKDOWN)
    else:
        sentences = count_sentences(content or "")
        if sentences < MIN_SENTENCES or sentences > MAX_SENTENCES:
            issues.append(ANSWER_LENGTH)

    return issues


_VALIDATOR_SYSTEM = (
    "You are the VALIDATOR agent correcting outputs to match formatting and "
    "quality requirements."
)


async def validate(
    unit: WorkUnit,
    content: str,
    plan: Plan,
    evidence: RetrievedEvidence,
    llm: LLMProvider,
) -> ValidationOutcome:
    """Check the draft once; repair it with one completion if needed."""
    issues = check_content(unit, content)
    if not issues:
        return ValidationOutcome(content=content)

    logger.info(
        "Validator found %d issue(s) for %s: %s",
        len(issues), unit.section or "question",
        ", ".join(issue.code for issue in issues),
    )

    prompt = (
        f"Issues detected: {' | '.join(issue.message for issue in issues)}\n"
        f"Mode: {unit.kind}\n"
        f"Section: {unit.section_title}\n"
        f"Plan Objective: {plan.objective}\n\n"
        f"Original Content:\n{content}\n\n"
        f"Retrieved Evidence (for reference):\n"
        f"{limit_text(evidence.aggregated_text, REPAIR_EVIDENCE_CHARS)}\n\n"
        "Return a corrected version that resolves all issues."
    )

    response = await llm.complete(
        messages=[{"role": "user", "content": prompt}],
        system=_VALIDATOR_SYSTEM,
        temperature=0.1,
        max_tokens=520 if unit.is_report else 220,
    )
    return ValidationOutcome(content=response.content, issues=issues)
