"""Tests for recursive character chunking."""

import pytest

from genai_studio.services.chunker import (
    RecursiveChunker,
    context_prefix_for,
    create_chunks,
    document_name,
)

PARAGRAPHS = [
    "Quarterly revenue grew twelve percent driven by subscription sales in the enterprise market.",
    "Photosynthesis lets green plants turn sunlight water and carbon dioxide into glucose and oxygen.",
    "The hiking trail climbs through pine forest before reaching an alpine lake near the summit.",
]


class TestDocumentName:
    def test_strips_last_extension(self):
        assert document_name("report.final.pdf") == "report.final"

    def test_strips_directories(self):
        assert document_name("C:\\docs\\notes.txt") == "notes"
        assert document_name("/tmp/uploads/notes.md") == "notes"

    def test_no_extension(self):
        assert document_name("README") == "README"

    def test_prefix(self):
        assert context_prefix_for("notes.txt") == "Document: notes\n\n"


class TestRecursiveChunker:
    def test_paragraphs_become_chunks(self):
        chunks = RecursiveChunker(120, 0).create_chunks("\n\n".join(PARAGRAPHS), "notes.txt", "doc-1")

        assert [c.text for c in chunks] == PARAGRAPHS
        assert [c.index for c in chunks] == [0, 1, 2]
        assert all(c.document_id == "doc-1" for c in chunks)
        assert chunks[1].content == f"Document: notes\n\n{PARAGRAPHS[1]}"

    def test_chunking_is_idempotent(self):
        text = " ".join(f"token{i}" for i in range(400))
        chunker = RecursiveChunker(100, 20)

        assert chunker.create_chunks(text, "a.txt") == chunker.create_chunks(text, "a.txt")

    def test_chunks_respect_size_and_overlap(self):
        text = " ".join(f"word{i}" for i in range(500))
        chunks = RecursiveChunker(100, 20).split_text(text)

        assert len(chunks) > 1
        assert all(len(chunk) <= 100 for chunk in chunks)
        for previous, current in zip(chunks, chunks[1:]):
            assert current.split()[0] in previous.split()

    def test_no_overlap_loses_nothing(self):
        text = " ".join(f"word{i}" for i in range(300))
        chunks = RecursiveChunker(80, 0).split_text(text)

        assert " ".join(chunks).split() == text.split()

    def test_character_level_fallback(self):
        chunks = RecursiveChunker(100, 0).split_text("x" * 250)

        assert [len(c) for c in chunks] == [100, 100, 50]

    def test_whitespace_normalised(self):
        chunks = RecursiveChunker(100, 0).create_chunks("  alpha    beta   gamma  ", "a.txt")

        assert [c.text for c in chunks] == ["alpha beta gamma"]

    def test_empty_content(self):
        assert RecursiveChunker().create_chunks("", "empty.txt") == []

    def test_default_chunker_keeps_short_text_whole(self):
        chunks = create_chunks("A short note.", "note.md")

        assert len(chunks) == 1
        assert chunks[0].content == "Document: note\n\nA short note."

    @pytest.mark.parametrize("size, overlap", [(0, 0), (100, 100), (100, -1)])
    def test_invalid_configuration(self, size, overlap):
        with pytest.raises(ValueError):
            RecursiveChunker(size, overlap)
