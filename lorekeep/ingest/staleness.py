# lorekeep/ingest/staleness.py
"""
Staleness detection for incremental analysis.

Computes the work list by comparing:
1. Current documents (id, text, last_modified)
2. Stored fingerprint records (hash, processed_at)

A document with non-empty text needs processing when:
- No fingerprint record exists for it (new)
- Its fingerprint differs from the stored hash (content_changed)
- last_modified is strictly later than processed_at (modified_after_processing)

Documents with empty text are never stale.

If the fingerprint store cannot be read the report status is "unknown".
An unknown report is NOT "nothing stale": callers must not skip analysis
because of it.

This module ONLY computes the list - it never writes fingerprints.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from lorekeep.core.exceptions import StaleFingerprintStoreUnavailable
from lorekeep.logging.tags import STALENESS

from .documents import Document
from .hashing import fingerprint, is_analyzable
from .state import FingerprintRecord, FingerprintStore

logger = logging.getLogger(__name__)


class StaleReason(str, Enum):
    """Why a document needs (re)analysis."""

    NEW = "new"
    CONTENT_CHANGED = "content_changed"
    MODIFIED_AFTER_PROCESSING = "modified_after_processing"


class ReportStatus(str, Enum):
    OK = "ok"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class StaleDocument:
    document_id: str
    reason: StaleReason
    current_hash: str


@dataclass
class StalenessReport:
    """
    Result of staleness detection.

    status is "ok" when the fingerprint store was read, "unknown" when it
    could not be; in the unknown case stale is empty and error says why.
    """

    status: ReportStatus = ReportStatus.OK
    stale: List[StaleDocument] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_known(self) -> bool:
        return self.status == ReportStatus.OK

    @property
    def document_ids(self) -> List[str]:
        return [s.document_id for s in self.stale]

    @property
    def count(self) -> Optional[int]:
        """Number of stale documents, or None when unknown."""
        return len(self.stale) if self.is_known else None

    @property
    def summary(self) -> str:
        if not self.is_known:
            return f"status=unknown ({self.error})"
        by_reason: Dict[str, int] = {}
        for s in self.stale:
            by_reason[s.reason.value] = by_reason.get(s.reason.value, 0) + 1
        parts = ", ".join(f"{k}={v}" for k, v in sorted(by_reason.items()))
        return f"stale={len(self.stale)}" + (f" ({parts})" if parts else "")

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "count": self.count,
            "documentIds": self.document_ids,
            "reasons": {s.document_id: s.reason.value for s in self.stale},
            "error": self.error,
        }


def classify(document: Document, record: Optional[FingerprintRecord]) -> Optional[StaleReason]:
    """
    Decide whether one document is stale against its stored record.

    Returns None when the document is up to date or not analysable.
    """
    if not is_analyzable(document.text):
        return None
    if record is None:
        return StaleReason.NEW
    if fingerprint(document.text) != record.hash:
        return StaleReason.CONTENT_CHANGED
    if document.last_modified > record.processed_at:
        return StaleReason.MODIFIED_AFTER_PROCESSING
    return None


class StalenessDetector:
    """
    Read-only comparison of documents against the fingerprint store.

    Usage:
        detector = StalenessDetector(store)
        report = detector.detect("project-1", documents)
        if not report.is_known:
            ...  # surface "unknown", do not skip analysis
    """

    def __init__(self, store: FingerprintStore) -> None:
        self._store = store

    def detect(self, project_id: str, documents: Iterable[Document]) -> StalenessReport:
        try:
            records = self._store.records_for(project_id)
        except StaleFingerprintStoreUnavailable as e:
            logger.warning(f"{STALENESS} project={project_id} staleness unknown: {e}")
            return StalenessReport(status=ReportStatus.UNKNOWN, error=str(e))

        report = StalenessReport()
        for doc in documents:
            reason = classify(doc, records.get(doc.id))
            if reason is not None:
                report.stale.append(StaleDocument(doc.id, reason, fingerprint(doc.text)))

        logger.info(f"{STALENESS} project={project_id} {report.summary}")
        return report


__all__ = [
    "StaleReason",
    "ReportStatus",
    "StaleDocument",
    "StalenessReport",
    "StalenessDetector",
    "classify",
]
