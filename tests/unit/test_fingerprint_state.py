# tests/unit/test_fingerprint_state.py
"""
Tests for the fingerprint store implementations.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from lorekeep.core.exceptions import StaleFingerprintStoreUnavailable
from lorekeep.core.paths import LorePaths
from lorekeep.ingest.documents import Document
from lorekeep.ingest.staleness import StalenessDetector
from lorekeep.ingest.state import (
    FingerprintRecord,
    FingerprintStateManager,
    InMemoryFingerprintStore,
)

WHEN = datetime(2024, 2, 2, tzinfo=timezone.utc)


def _record(doc_id: str, digest: str = "abc", project: str = "p1") -> FingerprintRecord:
    return FingerprintRecord(document_id=doc_id, project_id=project, hash=digest, processed_at=WHEN)


class TestFingerprintStateManager:
    """Tests for the JSON-file backed store."""

    def test_defaults_to_workspace_path(self, workspace: Path):
        assert FingerprintStateManager().path == LorePaths.fingerprints()
        assert LorePaths.fingerprints().parent == workspace.resolve()

    def test_missing_file_is_empty_store(self, tmp_path: Path):
        manager = FingerprintStateManager(tmp_path / "fingerprints.json")

        assert manager.records_for("p1") == {}
        assert not (tmp_path / "fingerprints.json").exists()

    def test_upsert_persists_immediately(self, tmp_path: Path):
        path = tmp_path / "fingerprints.json"
        FingerprintStateManager(path).upsert([_record("ch1"), _record("x", project="p2")])

        reloaded = FingerprintStateManager(path)

        assert set(reloaded.records_for("p1")) == {"ch1"}
        assert reloaded.records_for("p1")["ch1"].processed_at == WHEN
        assert set(reloaded.records_for("p2")) == {"x"}
        assert not path.with_suffix(".tmp").exists()

    def test_upsert_overwrites(self, tmp_path: Path):
        manager = FingerprintStateManager(tmp_path / "fingerprints.json")
        manager.upsert([_record("ch1", "old")])
        manager.upsert([_record("ch1", "new")])

        assert manager.records_for("p1")["ch1"].hash == "new"

    def test_corrupt_file_raises(self, tmp_path: Path):
        """Test that a corrupt store is never treated as empty."""
        path = tmp_path / "fingerprints.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StaleFingerprintStoreUnavailable):
            FingerprintStateManager(path).records_for("p1")

    def test_schema_mismatch_raises(self, tmp_path: Path):
        path = tmp_path / "fingerprints.json"
        path.write_text('{"records": {"a": {"hash": 1}}}', encoding="utf-8")

        with pytest.raises(StaleFingerprintStoreUnavailable):
            FingerprintStateManager(path).load()

    def test_corrupt_file_makes_staleness_unknown(self, tmp_path: Path):
        path = tmp_path / "fingerprints.json"
        path.write_text("[]", encoding="utf-8")
        doc = Document(id="ch1", text="text", last_modified=WHEN)

        report = StalenessDetector(FingerprintStateManager(path)).detect("p1", [doc])

        assert report.count is None
        assert report.status.value == "unknown"

    def test_snapshot_restore_round_trip(self, tmp_path: Path):
        path = tmp_path / "fingerprints.json"
        manager = FingerprintStateManager(path)
        manager.upsert([_record("ch1", "v1")])
        snap = manager.snapshot()

        manager.upsert([_record("ch1", "v2"), _record("ch2")])
        manager.restore(snap)

        assert set(manager.records_for("p1")) == {"ch1"}
        assert FingerprintStateManager(path).records_for("p1")["ch1"].hash == "v1"


class TestInMemoryFingerprintStore:
    def test_snapshot_is_independent_copy(self):
        store = InMemoryFingerprintStore([_record("ch1", "v1")])
        snap = store.snapshot()

        store.upsert([_record("ch1", "v2")])
        assert store.get("ch1").hash == "v2"

        store.restore(snap)
        assert store.get("ch1").hash == "v1"
        assert len(store) == 1
