# tests/unit/test_status_reporter.py
"""
Tests for the project analysis status surface.
"""

from lorekeep.core.exceptions import StaleFingerprintStoreUnavailable
from lorekeep.ingest.staleness import StalenessDetector
from lorekeep.ingest.state import InMemoryFingerprintStore
from lorekeep.jobs.models import JobState, ProcessingJob
from lorekeep.jobs.status import AnalysisStatusReporter
from lorekeep.jobs.store import InMemoryJobStore
from lorekeep.knowledge.models import KnowledgeCategory, KnowledgeItem
from lorekeep.knowledge.store import InMemoryKnowledgeStore


class UnreadableStore(InMemoryFingerprintStore):
    def records_for(self, project_id):
        raise StaleFingerprintStoreUnavailable("locked")


def _reporter(fingerprints=None, jobs=None, knowledge=None) -> AnalysisStatusReporter:
    return AnalysisStatusReporter(
        jobs or InMemoryJobStore(),
        knowledge or InMemoryKnowledgeStore(),
        StalenessDetector(fingerprints if fingerprints is not None else InMemoryFingerprintStore()),
    )


class TestAnalysisStatusReporter:
    def test_fresh_project(self, doc):
        status = _reporter().status("p1", [doc("ch1", "text"), doc("ch2", "")])

        assert status == {
            "isProcessing": False,
            "lastProcessedAt": None,
            "lowConfidenceFactsCount": 0,
            "errorCount": 0,
            "hasErrors": False,
            "hasUnanalyzedContent": True,
            "unanalyzedChapterCount": 1,
            "currentJob": None,
        }

    def test_unknown_staleness_is_not_false(self, doc):
        """Test that an unreadable store reports None, never 'nothing to analyse'."""
        status = _reporter(fingerprints=UnreadableStore()).status("p1", [doc("ch1", "text")])

        assert status["hasUnanalyzedContent"] is None
        assert status["unanalyzedChapterCount"] is None

    def test_counts_and_active_job(self):
        jobs = InMemoryJobStore()
        jobs.save(ProcessingJob(project_id="p1", state=JobState.ANALYZING))
        knowledge = InMemoryKnowledgeStore(
            [
                KnowledgeItem(project_id="p1", category=KnowledgeCategory.THEME, name="a", confidence_score=0.2),
                KnowledgeItem(project_id="p1", category=KnowledgeCategory.THEME, name="b", is_flagged=True),
                KnowledgeItem(project_id="p2", category=KnowledgeCategory.THEME, name="c", confidence_score=0.1),
            ]
        )

        status = _reporter(jobs=jobs, knowledge=knowledge).status("p1", [])

        assert status["isProcessing"] is True
        assert status["lowConfidenceFactsCount"] == 1
        assert status["errorCount"] == 1
        assert status["hasErrors"] is True
        assert status["currentJob"]["state"] == "analyzing"
        assert status["unanalyzedChapterCount"] == 0
