# =============================================================================
# Unit Tests — Analyst Draft and Validator (single repair round)
# =============================================================================

from __future__ import annotations

import asyncio

import pytest

from finanalyzer.agents.analyst import EVIDENCE_CHAR_LIMIT, SECTION_GUIDANCE, draft
from finanalyzer.agents.planner import Plan
from finanalyzer.agents.researcher import RetrievedEvidence
from finanalyzer.agents.tools import ToolOutput
from finanalyzer.agents.units import SECTION_ORDER, WorkUnit
from finanalyzer.agents.validator import (
    ANSWER_LENGTH,
    BULLET_FORMAT,
    EMPTY_CONTENT,
    MARKDOWN,
    check_content,
    count_sentences,
    validate,
)


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


SECTION = WorkUnit.for_section("financial_highlights", "Acme Corp")
QUESTION = WorkUnit.for_question("How did revenue change?", "Acme Corp")
EVIDENCE = RetrievedEvidence(
    snippets=["Revenue grew 12%."],
    aggregated_text="Revenue grew 12%.",
)
PLAN = Plan(objective="Summarize financial performance", retrieval_queries=["revenue"])


class TestCheckContent:
    def test_clean_report_passes(self):
        assert check_content(SECTION, "• Revenue grew 12%\n• Margin rose") == []

    def test_blank_lines_ignored(self):
        assert check_content(SECTION, "• Revenue grew\n\n• Margin rose\n") == []

    def test_unbulleted_line_flagged(self):
        assert check_content(SECTION, "• Revenue grew\nMargin rose") == [BULLET_FORMAT]

    def test_markdown_flagged(self):
        assert check_content(SECTION, "• **Revenue** grew") == [MARKDOWN]

    def test_empty_report_flagged(self):
        assert EMPTY_CONTENT in check_content(SECTION, "   ")

    @pytest.mark.parametrize("answer", [
        "Revenue grew 12%.",
        "Revenue grew. Margins rose. Cash improved. Debt fell.",
    ])
    def test_answer_within_sentence_bounds(self, answer):
        assert check_content(QUESTION, answer) == []

    def test_long_answer_flagged(self):
        answer = "One. Two. Three. Four. Five."
        assert check_content(QUESTION, answer) == [ANSWER_LENGTH]

    def test_empty_answer_flagged(self):
        assert check_content(QUESTION, "") == [EMPTY_CONTENT, ANSWER_LENGTH]

    def test_sentence_count_is_naive(self):
        # Decimal points split sentences too; the threshold is policy, not grammar
        assert count_sentences("Revenue was 4.2 billion!") == 2


class TestValidate:
    def test_clean_content_passes_without_llm_call(self, fake_llm_factory):
        llm = fake_llm_factory()
        outcome = _run(validate(SECTION, "• Revenue grew", PLAN, EVIDENCE, llm))
        assert outcome.content == "• Revenue grew"
        assert outcome.repaired is False
        assert llm.calls == []

    def test_single_repair_round_not_rechecked(self, fake_llm_factory):
        # The corrected text is still malformed; it is accepted anyway
        llm = fake_llm_factory(["still **not** bulleted"])
        outcome = _run(validate(SECTION, "## Revenue", PLAN, EVIDENCE, llm))

        assert outcome.content == "still **not** bulleted"
        assert outcome.repaired is True
        assert len(llm.calls) == 1
        call = llm.calls[0]
        assert BULLET_FORMAT.message in call["prompt"]
        assert MARKDOWN.message in call["prompt"]
        assert "## Revenue" in call["prompt"]
        assert "Revenue grew 12%." in call["prompt"]
        assert call["temperature"] == 0.1


class TestDraft:
    def test_section_prompt_and_settings(self, fake_llm_factory):
        llm = fake_llm_factory(["• Revenue grew"])
        content = _run(draft(
            SECTION, PLAN, EVIDENCE,
            [ToolOutput("numeric_summary", "Numeric highlights identified:\nRevenue grew 12%.")],
            "[PLANNER] plan", llm,
        ))

        assert content == "• Revenue grew"
        call = llm.calls[0]
        assert SECTION_GUIDANCE["financial_highlights"] in call["prompt"]
        assert "Tool[numeric_summary]" in call["prompt"]
        assert "[PLANNER] plan" in call["prompt"]
        assert '"objective": "Summarize financial performance"' in call["prompt"]
        assert call["max_tokens"] == 520
        assert call["temperature"] == 0.2

    def test_question_uses_shorter_budget(self, fake_llm_factory):
        llm = fake_llm_factory(["Revenue grew 12%."])
        _run(draft(QUESTION, PLAN, EVIDENCE, [], "No prior context available.", llm))
        call = llm.calls[0]
        assert call["max_tokens"] == 220
        assert "2-3 sentences" in call["prompt"]
        assert "No tool outputs available." in call["prompt"]

    def test_evidence_truncated(self, fake_llm_factory):
        llm = fake_llm_factory(["ok."])
        big = RetrievedEvidence(snippets=["x"], aggregated_text="x" * 20000)
        _run(draft(QUESTION, PLAN, big, [], "", llm))
        assert "x" * (EVIDENCE_CHAR_LIMIT + 1) not in llm.calls[0]["prompt"]

    def test_every_section_has_guidance(self):
        assert set(SECTION_GUIDANCE) == set(SECTION_ORDER)
