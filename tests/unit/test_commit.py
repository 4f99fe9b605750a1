# tests/unit/test_commit.py
"""
Tests for the knowledge + fingerprint commit unit.
"""

import pytest

from lorekeep.core.exceptions import CommitError
from lorekeep.ingest.state import FingerprintRecord, InMemoryFingerprintStore
from lorekeep.jobs.commit import CommitUnit
from lorekeep.knowledge.models import KnowledgeCategory, KnowledgeItem
from lorekeep.knowledge.store import InMemoryKnowledgeStore


def _record(doc_id: str = "ch1") -> FingerprintRecord:
    return FingerprintRecord(document_id=doc_id, project_id="p1", hash="h")


def _item(**kwargs) -> KnowledgeItem:
    return KnowledgeItem(project_id="p1", category=KnowledgeCategory.THEME, name="Debt", **kwargs)


class ExplodingKnowledgeStore(InMemoryKnowledgeStore):
    def upsert(self, items):
        super().upsert(items)
        raise RuntimeError("write failed halfway")


class TestCommitUnit:
    def test_writes_both(self):
        knowledge, fingerprints = InMemoryKnowledgeStore(), InMemoryFingerprintStore()

        CommitUnit(knowledge, fingerprints).commit([_item()], [_record()])

        assert len(knowledge) == 1
        assert fingerprints.get("ch1").hash == "h"

    def test_failure_restores_both(self):
        existing = _item(description="before")
        knowledge = ExplodingKnowledgeStore([existing])
        fingerprints = InMemoryFingerprintStore()
        changed = existing.model_copy(update={"description": "after"})

        with pytest.raises(CommitError):
            CommitUnit(knowledge, fingerprints).commit([changed], [_record()])

        assert knowledge.get(existing.id).description == "before"
        assert len(fingerprints) == 0

    def test_user_correction_not_overwritten(self):
        """Test that an edit made while a job ran survives the job's commit."""
        stale_copy = _item(description="model text")
        corrected = stale_copy.model_copy(deep=True).apply_user_edit(description="author text")
        knowledge = InMemoryKnowledgeStore([corrected])

        CommitUnit(knowledge, InMemoryFingerprintStore()).commit([stale_copy], [_record()])

        assert knowledge.get(corrected.id).description == "author text"
        assert knowledge.get(corrected.id).confidence_score == 1.0
