# tests/unit/test_staleness.py
"""
Tests for lorekeep.ingest.staleness.

Key tests verify that:
1. Every stale reason is detected
2. Empty documents are never stale
3. An unreadable fingerprint store yields "unknown", never an empty list
"""

from datetime import datetime, timedelta, timezone

from lorekeep.core.exceptions import StaleFingerprintStoreUnavailable
from lorekeep.ingest.documents import Document
from lorekeep.ingest.hashing import fingerprint
from lorekeep.ingest.staleness import ReportStatus, StaleReason, StalenessDetector, classify
from lorekeep.ingest.state import FingerprintRecord, InMemoryFingerprintStore

PROCESSED = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _doc(doc_id: str, text: str, modified: datetime = PROCESSED - timedelta(days=1)) -> Document:
    return Document(id=doc_id, text=text, last_modified=modified)


def _record(doc_id: str, text: str, project: str = "p1") -> FingerprintRecord:
    return FingerprintRecord(
        document_id=doc_id, project_id=project, hash=fingerprint(text), processed_at=PROCESSED
    )


class BrokenStore(InMemoryFingerprintStore):
    def records_for(self, project_id):
        raise StaleFingerprintStoreUnavailable("disk on fire")


class TestClassify:
    def test_no_record_is_new(self):
        assert classify(_doc("a", "text"), None) == StaleReason.NEW

    def test_hash_mismatch_is_content_changed(self):
        assert classify(_doc("a", "new text"), _record("a", "old text")) == StaleReason.CONTENT_CHANGED

    def test_touched_after_processing(self):
        """Test that a later last_modified marks the document stale even with the same hash."""
        doc = _doc("a", "text", modified=PROCESSED + timedelta(seconds=1))
        assert classify(doc, _record("a", "text")) == StaleReason.MODIFIED_AFTER_PROCESSING

    def test_modified_at_processing_time_is_current(self):
        doc = _doc("a", "text", modified=PROCESSED)
        assert classify(doc, _record("a", "text")) is None

    def test_whitespace_only_edit_at_edges_is_current(self):
        assert classify(_doc("a", "  text \n"), _record("a", "text")) is None

    def test_empty_document_never_stale(self):
        assert classify(_doc("a", "   "), None) is None

    def test_naive_last_modified_read_as_utc(self):
        doc = _doc("a", "text", modified=datetime(2024, 3, 1, 12, 0, 1))

        assert doc.last_modified.tzinfo is timezone.utc
        assert classify(doc, _record("a", "text")) == StaleReason.MODIFIED_AFTER_PROCESSING

    def test_naive_processed_at_read_as_utc(self):
        record = FingerprintRecord(
            document_id="a", project_id="p1", hash=fingerprint("text"),
            processed_at=datetime(2024, 3, 1, 12, 0),
        )

        assert record.processed_at.tzinfo is not None
        assert classify(_doc("a", "text", modified=PROCESSED), record) is None


class TestStalenessDetector:
    def test_detects_mixed_reasons(self):
        store = InMemoryFingerprintStore(
            [_record("same", "unchanged"), _record("edited", "before")]
        )
        docs = [
            _doc("same", "unchanged"),
            _doc("edited", "after"),
            _doc("brand-new", "hello"),
            _doc("empty", ""),
        ]

        report = StalenessDetector(store).detect("p1", docs)

        assert report.status == ReportStatus.OK
        assert report.document_ids == ["edited", "brand-new"]
        assert [s.reason for s in report.stale] == [StaleReason.CONTENT_CHANGED, StaleReason.NEW]
        assert report.count == 2
        assert report.stale[0].current_hash == fingerprint("after")

    def test_records_are_scoped_to_project(self):
        store = InMemoryFingerprintStore([_record("a", "text", project="other")])

        report = StalenessDetector(store).detect("p1", [_doc("a", "text")])

        assert report.document_ids == ["a"]
        assert report.stale[0].reason == StaleReason.NEW

    def test_nothing_stale(self):
        store = InMemoryFingerprintStore([_record("a", "text")])

        report = StalenessDetector(store).detect("p1", [_doc("a", "text")])

        assert report.is_known
        assert report.count == 0
        assert report.summary == "stale=0"

    def test_unreadable_store_is_unknown(self):
        """Test that a read failure is reported as unknown, not as 'nothing stale'."""
        report = StalenessDetector(BrokenStore()).detect("p1", [_doc("a", "text")])

        assert report.status == ReportStatus.UNKNOWN
        assert not report.is_known
        assert report.count is None
        assert report.stale == []
        assert "disk on fire" in report.error

    def test_naive_document_against_stored_record(self):
        store = InMemoryFingerprintStore([_record("a", "text")])

        report = StalenessDetector(store).detect("p1", [_doc("a", "text", modified=datetime(2024, 1, 1))])

        assert report.status == ReportStatus.OK
        assert report.count == 0

    def test_to_dict_shape(self):
        report = StalenessDetector(InMemoryFingerprintStore()).detect("p1", [_doc("a", "x")])

        assert report.to_dict() == {
            "status": "ok",
            "count": 1,
            "documentIds": ["a"],
            "reasons": {"a": "new"},
            "error": None,
        }
