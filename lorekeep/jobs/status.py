# lorekeep/jobs/status.py
"""
Analysis status query surface for a project.

Keys:
    isProcessing, lastProcessedAt, lowConfidenceFactsCount, errorCount,
    hasErrors, hasUnanalyzedContent, unanalyzedChapterCount, currentJob

When staleness cannot be determined the two unanalyzed fields are None,
never False / 0.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable

from lorekeep.ingest.documents import Document
from lorekeep.ingest.staleness import StalenessDetector
from lorekeep.knowledge.store import KnowledgeStore

from .models import JobState
from .store import JobStore


class AnalysisStatusReporter:
    def __init__(
        self,
        job_store: JobStore,
        knowledge_store: KnowledgeStore,
        detector: StalenessDetector,
    ) -> None:
        self.job_store = job_store
        self.knowledge_store = knowledge_store
        self.detector = detector

    def status(self, project_id: str, documents: Iterable[Document]) -> Dict[str, Any]:
        jobs = self.job_store.list(project_id)
        latest = jobs[-1] if jobs else None
        last_done = next((j for j in reversed(jobs) if j.state == JobState.DONE), None)

        items = self.knowledge_store.list(project_id)
        low_confidence = sum(1 for i in items if i.is_low_confidence)
        flagged = sum(1 for i in items if i.is_flagged)

        report = self.detector.detect(project_id, documents)

        return {
            "isProcessing": bool(latest and latest.is_active),
            "lastProcessedAt": (
                last_done.completed_at.isoformat() if last_done and last_done.completed_at else None
            ),
            "lowConfidenceFactsCount": low_confidence,
            "errorCount": flagged,
            "hasErrors": bool(latest and latest.state == JobState.FAILED) or flagged > 0,
            "hasUnanalyzedContent": (report.count > 0) if report.is_known else None,
            "unanalyzedChapterCount": report.count,
            "currentJob": latest.model_dump(mode="json") if latest else None,
        }


__all__ = ["AnalysisStatusReporter"]
