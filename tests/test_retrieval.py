# =============================================================================
# Unit Tests — Lexical Scoring and Deduplication
# =============================================================================

from finanalyzer.services.chunker import Chunk
from finanalyzer.services.retrieval import (
    SIGNATURE_LENGTH,
    dedupe_by_signature,
    lexical_score,
    lexical_search,
    split_keywords,
)


def _chunk(i: int, text: str) -> Chunk:
    return Chunk(id=f"chunk_{i}", text=text, index=i)


class TestSplitKeywords:
    def test_splits_on_commas_semicolons_hyphens(self):
        assert split_keywords(["Revenue, margin; cash-flow"]) == [
            "revenue", "margin", "cash", "flow",
        ]

    def test_drops_empty_parts(self):
        assert split_keywords([",,", "  ", ""]) == []


class TestLexicalScore:
    def test_counts_occurrences_case_insensitively(self):
        assert lexical_score("Revenue rose. REVENUE is up.", ["revenue"]) == 2

    def test_regex_characters_are_literal(self):
        assert lexical_score("Margin (GAAP) was 18.5%", ["(gaap)", "18.5%"]) == 2
        assert lexical_score("185", ["1.5"]) == 0


class TestLexicalSearch:
    def test_zero_score_chunks_excluded(self):
        chunks = [_chunk(0, "revenue grew"), _chunk(1, "weather report")]
        assert lexical_search(chunks, ["revenue"]) == [chunks[0]]

    def test_ranked_by_score_then_document_order(self):
        chunks = [
            _chunk(0, "revenue"),
            _chunk(1, "revenue revenue revenue"),
            _chunk(2, "revenue"),
        ]
        result = lexical_search(chunks, ["revenue"])
        assert [c.id for c in result] == ["chunk_1", "chunk_0", "chunk_2"]

    def test_limit_applied(self):
        chunks = [_chunk(i, "revenue") for i in range(10)]
        assert len(lexical_search(chunks, ["revenue"], limit=4)) == 4

    def test_no_queries(self):
        assert lexical_search([_chunk(0, "revenue")], []) == []


class TestDedupeBySignature:
    def test_shared_prefix_counts_as_duplicate(self):
        prefix = "A" * SIGNATURE_LENGTH
        first = _chunk(0, prefix + " first tail")
        second = _chunk(1, prefix + " second tail")
        assert dedupe_by_signature([first, second]) == [first]

    def test_different_prefixes_kept_in_order(self):
        a, b = _chunk(0, "alpha"), _chunk(1, "beta")
        assert dedupe_by_signature([b, a, b]) == [b, a]
