# tests/unit/test_chunking.py
"""
Tests for lorekeep.ingest.chunking.
"""

from datetime import datetime, timezone

import pytest

from lorekeep.ingest.chunking import chunk_document, chunk_documents
from lorekeep.ingest.documents import Document

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _doc(doc_id: str, text: str) -> Document:
    return Document(id=doc_id, text=text, last_modified=NOW)


class TestChunkDocument:
    def test_short_document_is_one_chunk(self):
        chunks = chunk_document(_doc("ch1", "One.\n\nTwo."), max_chars=100)

        assert len(chunks) == 1
        assert chunks[0].id == "ch1:0"
        assert chunks[0].content == "One.\n\nTwo."
        assert chunks[0].document_id == "ch1"

    def test_paragraphs_packed_up_to_limit(self):
        text = "\n\n".join(["x" * 40, "y" * 40, "z" * 40])
        chunks = chunk_document(_doc("ch1", text), max_chars=90)

        assert [c.content for c in chunks] == [f"{'x' * 40}\n\n{'y' * 40}", "z" * 40]
        assert [c.chunk_index for c in chunks] == [0, 1]

    def test_long_paragraph_is_hard_split(self):
        chunks = chunk_document(_doc("ch1", "a" * 25), max_chars=10)

        assert [len(c.content) for c in chunks] == [10, 10, 5]
        assert all(len(c.content) <= 10 for c in chunks)

    def test_empty_document_yields_no_chunks(self):
        assert chunk_document(_doc("ch1", "  \n\n ")) == []

    def test_invalid_limit_raises(self):
        with pytest.raises(ValueError):
            chunk_document(_doc("ch1", "text"), max_chars=0)

    def test_chunk_index_restarts_per_document(self):
        chunks = chunk_documents([_doc("a", "one"), _doc("b", "two")])

        assert [(c.document_id, c.chunk_index) for c in chunks] == [("a", 0), ("b", 0)]
