# lorekeep/ingest/chunking.py
"""
Split documents into extraction chunks.

Paragraphs are packed greedily up to max_chars; a single paragraph longer
than max_chars is hard-split. chunk_index restarts at 0 for each document.
"""

from __future__ import annotations

from typing import Iterable, List

from lorekeep.extraction.models import ExtractionChunk

from .documents import Document
from .hashing import split_paragraphs


def _pack(paragraphs: List[str], max_chars: int) -> List[str]:
    pieces: List[str] = []
    current = ""
    for para in paragraphs:
        while len(para) > max_chars:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(para[:max_chars])
            para = para[max_chars:]
        if not current:
            current = para
        elif len(current) + 2 + len(para) <= max_chars:
            current = f"{current}\n\n{para}"
        else:
            pieces.append(current)
            current = para
    if current:
        pieces.append(current)
    return pieces


def chunk_document(document: Document, max_chars: int = 4000) -> List[ExtractionChunk]:
    """Chunk one document. Empty documents yield no chunks."""
    if max_chars < 1:
        raise ValueError("max_chars must be >= 1")
    pieces = _pack(split_paragraphs(document.text), max_chars)
    return [
        ExtractionChunk(
            id=f"{document.id}:{i}",
            content=piece,
            chunk_index=i,
            document_id=document.id,
        )
        for i, piece in enumerate(pieces)
    ]


def chunk_documents(documents: Iterable[Document], max_chars: int = 4000) -> List[ExtractionChunk]:
    chunks: List[ExtractionChunk] = []
    for doc in documents:
        chunks.extend(chunk_document(doc, max_chars))
    return chunks


__all__ = ["chunk_document", "chunk_documents"]
