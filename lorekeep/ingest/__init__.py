# lorekeep/ingest/__init__.py
"""
Incremental analysis inputs: fingerprints, fingerprint store, staleness.
"""

from .documents import (
    DirectoryDocumentSource,
    Document,
    DocumentSource,
    StaticDocumentSource,
    load_documents,
)
from .hashing import changed_paragraphs, fingerprint, fingerprint_many, paragraph_fingerprints
from .staleness import StaleDocument, StalenessDetector, StalenessReport, StaleReason

__all__ = [
    "Document",
    "load_documents",
    "DocumentSource",
    "StaticDocumentSource",
    "DirectoryDocumentSource",
    "fingerprint",
    "fingerprint_many",
    "paragraph_fingerprints",
    "changed_paragraphs",
    "StalenessDetector",
    "StalenessReport",
    "StaleDocument",
    "StaleReason",
]
