# =============================================================================
# Unit Tests — Text Cleaning and Chunking
# =============================================================================
#
# Token-window chunking with tiktoken. No API keys or network calls needed
# beyond the one-time cl100k_base download.
# =============================================================================

import pytest

from finanalyzer.services.chunker import (
    COORDINATED_CLEANING,
    SPECIALIST_CLEANING,
    Chunk,
    chunk_text,
    clean_text,
    prepare_chunks,
)


class TestCleanText:
    """Tests for clean_text()."""

    def test_removes_page_markers(self):
        assert clean_text("Revenue up Page 2 of 9 strongly") == "Revenue up strongly"

    def test_page_marker_case_insensitive(self):
        assert clean_text("a PAGE 3 OF 10 b") == "a b"

    def test_removes_all_caps_heading_lines(self):
        text = "RISK FACTORS\nSupply issues may persist."
        assert clean_text(text) == "Supply issues may persist."

    def test_keeps_mixed_case_lines(self):
        text = "Risk Factors\nSupply issues."
        assert clean_text(text) == "Risk Factors Supply issues."

    def test_collapses_whitespace(self):
        assert clean_text("a  \n\n  b\t c") == "a b c"

    def test_empty_input(self):
        assert clean_text("") == ""

    def test_coordinated_keeps_bare_page_numbers(self):
        text = "Revenue\n42\nMargin"
        assert clean_text(text, COORDINATED_CLEANING) == "Revenue 42 Margin"

    def test_specialist_strips_bare_page_numbers(self):
        text = "Revenue\n42\nMargin"
        assert clean_text(text, SPECIALIST_CLEANING) == "Revenue Margin"


class TestChunkText:
    """Tests for chunk_text()."""

    def test_empty_text_returns_no_chunks(self):
        assert chunk_text("", chunk_size=64, chunk_overlap=10) == []

    def test_short_text_is_single_chunk(self):
        chunks = chunk_text("This is a short sentence.", chunk_size=64, chunk_overlap=10)
        assert len(chunks) == 1
        assert chunks[0].id == "chunk_0"
        assert chunks[0].text == "This is a short sentence."

    def test_ids_and_indices_are_sequential(self):
        chunks = chunk_text("word " * 200, chunk_size=32, chunk_overlap=5)
        assert len(chunks) > 1
        for i, chunk in enumerate(chunks):
            assert chunk.id == f"chunk_{i}"
            assert chunk.index == i

    def test_chunks_respect_token_budget(self):
        chunks = chunk_text("word " * 200, chunk_size=32, chunk_overlap=5)
        assert all(0 < chunk.token_count <= 32 for chunk in chunks)

    def test_overlap_must_be_smaller_than_size(self):
        with pytest.raises(ValueError):
            chunk_text("some text", chunk_size=10, chunk_overlap=10)

    def test_chunks_are_immutable(self):
        chunk = chunk_text("Immutable text.", chunk_size=16, chunk_overlap=2)[0]
        with pytest.raises(AttributeError):
            chunk.text = "changed"

    def test_larger_windows_produce_fewer_chunks(self):
        text = "revenue margin cash " * 150
        small = chunk_text(text, chunk_size=64, chunk_overlap=8)
        large = chunk_text(text, chunk_size=128, chunk_overlap=16)
        assert len(large) < len(small)


class TestPrepareChunks:
    """Tests for the clean-then-chunk helper."""

    def test_page_furniture_never_reaches_chunks(self, sample_report):
        chunks = prepare_chunks(sample_report, COORDINATED_CLEANING, 64, 8)
        assert chunks
        assert all(isinstance(chunk, Chunk) for chunk in chunks)
        joined = " ".join(chunk.text for chunk in chunks)
        assert "Page 1 of 3" not in joined
        assert "RISK FACTORS" not in joined
        assert "semiconductors" in joined
