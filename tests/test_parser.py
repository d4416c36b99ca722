"""Tests for PDF extraction and chunking."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from manual_rag.errors import IndexUnavailable
from manual_rag.rag.parser import PageText, chunk_text, extract_pages, split_pages


class TestChunkText:
    """Tests for chunk_text function."""

    def test_empty_text_returns_no_chunks(self):
        """Should return an empty list for empty or blank text."""
        assert chunk_text("") == []
        assert chunk_text("   \n ") == []

    def test_short_text_is_single_chunk(self):
        """Should keep text shorter than the window as one chunk."""
        assert chunk_text("Plant after the first effective rains.") == [
            "Plant after the first effective rains."
        ]

    def test_windows_respect_size(self):
        """Should never produce a chunk longer than chunk_size."""
        text = "x" * 2500
        chunks = chunk_text(text, chunk_size=1000, overlap=200)

        assert all(len(c) <= 1000 for c in chunks)
        assert len(chunks) == 3

    def test_adjacent_chunks_overlap(self):
        """Should repeat the last overlap characters at the start of the next chunk."""
        text = "".join(chr(ord("a") + i % 26) for i in range(1800))
        chunks = chunk_text(text, chunk_size=1000, overlap=200)

        assert chunks[0][-200:] == chunks[1][:200]

    def test_no_redundant_tail_chunk(self):
        """Should stop once a window reaches the end of the text."""
        text = "y" * 1800
        chunks = chunk_text(text, chunk_size=1000, overlap=200)

        assert len(chunks) == 2
        assert chunks[1] == "y" * 1000

    def test_prefers_paragraph_break(self):
        """Should cut at a paragraph break in the second half of the window."""
        text = "a" * 700 + "\n\n" + "b" * 700
        chunks = chunk_text(text, chunk_size=1000, overlap=200)

        assert chunks[0] == "a" * 700

    def test_rejects_overlap_not_smaller_than_size(self):
        """Should refuse settings that cannot make progress."""
        with pytest.raises(ValueError):
            chunk_text("z" * 50, chunk_size=10, overlap=10)


class TestSplitPages:
    """Tests for split_pages function."""

    def test_empty_input(self):
        """Should return no passages for no pages."""
        assert split_pages([]) == []

    def test_order_and_metadata_preserved(self):
        """Should number passages in document order and copy page metadata."""
        pages = [
            PageText(text="p" * 1500, metadata={"loc": {"pageNumber": 1}}),
            PageText(text="", metadata={"loc": {"pageNumber": 2}}),
            PageText(text="Short page.", metadata={"page": 2}),
        ]

        passages = split_pages(pages, chunk_size=1000, overlap=200)

        assert [p.ordinal for p in passages] == [0, 1, 2]
        assert [p.metadata for p in passages] == [
            {"loc": {"pageNumber": 1}},
            {"loc": {"pageNumber": 1}},
            {"page": 2},
        ]
        assert passages[2].text == "Short page."
        assert len({p.id for p in passages}) == 3


class TestExtractPages:
    """Tests for extract_pages function."""

    def test_missing_document(self, tmp_path):
        """Should raise IndexUnavailable when the PDF does not exist."""
        with pytest.raises(IndexUnavailable):
            extract_pages(tmp_path / "missing.pdf")

    def test_text_layer_records_one_based_loc(self, tmp_path):
        """Should tag text-layer pages with loc.pageNumber starting at 1."""
        pdf = tmp_path / "manual.pdf"
        pdf.write_bytes(b"%PDF-1.4 fake")

        page_one = MagicMock()
        page_one.extract_text.return_value = "First page"
        page_two = MagicMock()
        page_two.extract_text.return_value = None

        with patch("manual_rag.rag.parser.PdfReader") as mock_reader:
            mock_reader.return_value.pages = [page_one, page_two]
            pages = extract_pages(pdf, method="text")

        assert [p.text for p in pages] == ["First page", ""]
        assert pages[0].metadata == {"source": "manual.pdf", "loc": {"pageNumber": 1}}
        assert pages[1].metadata["loc"]["pageNumber"] == 2

    def test_vision_records_zero_based_page(self, tmp_path):
        """Should tag vision-transcribed pages with a zero-based page index."""
        pdf = tmp_path / "manual.pdf"
        pdf.write_bytes(b"%PDF-1.4 fake")

        with patch("manual_rag.rag.parser.convert_from_path") as mock_convert, \
             patch("manual_rag.rag.parser.get_llm_client"), \
             patch("manual_rag.rag.parser._image_to_base64", return_value="b64"), \
             patch("manual_rag.rag.parser._extract_text_from_image") as mock_ocr:
            mock_convert.return_value = [MagicMock(), MagicMock()]
            mock_ocr.side_effect = ["Cover", "Contents"]

            pages = extract_pages(pdf, method="vision")

        assert [p.metadata["page"] for p in pages] == [0, 1]
        assert [p.text for p in pages] == ["Cover", "Contents"]

    def test_unknown_method(self, tmp_path):
        """Should reject an unknown parser name."""
        pdf = tmp_path / "manual.pdf"
        pdf.write_bytes(b"%PDF-1.4 fake")

        with pytest.raises(ValueError):
            extract_pages(Path(pdf), method="ocr")
