# tests/unit/test_change_applicator.py
"""
Tests for lorekeep.changes.applicator.

Key tests verify that:
1. Rejecting every change reproduces the original
2. Accepted and pending changes stay in the text
3. Records applied to a different buffer fail instead of corrupting it
"""

import pytest

from lorekeep.changes.applicator import ChangeApplicator, reversal_plan
from lorekeep.changes.models import ChangeRecord, ChangeType, UserDecision
from lorekeep.changes.tracker import ChangeTracker
from lorekeep.core.exceptions import InvalidPositionRange

ORIGINAL = "The cat sat on the mat. He walked slow."
ENHANCED = "The black cat sat on the red mat. He walked slowly, without hurry."


@pytest.fixture
def changes():
    return ChangeTracker().track(ORIGINAL, ENHANCED)


class TestChangeApplicator:
    def test_reject_all_restores_original(self, changes):
        changes.decide_all(UserDecision.REJECTED)

        result = ChangeApplicator().apply(ENHANCED, changes.records)

        assert result.text == ORIGINAL
        assert result.kept == 0
        assert sorted(result.reverted) == sorted(r.id for r in changes.records)

    @pytest.mark.parametrize("decision", [UserDecision.ACCEPTED, UserDecision.PENDING])
    def test_non_rejected_changes_are_kept(self, changes, decision):
        changes.decide_all(decision)

        result = ChangeApplicator().apply(ENHANCED, changes.records)

        assert result.text == ENHANCED
        assert result.reverted == []

    def test_selective_reject(self, changes):
        changes.decide("change-1", UserDecision.REJECTED)

        text = ChangeApplicator().apply_text(ENHANCED, changes.records)

        assert text == "The cat sat on the red mat. He walked slowly, without hurry."

    def test_order_of_records_does_not_matter(self, changes):
        changes.decide_all(UserDecision.REJECTED)

        text = ChangeApplicator().apply_text(ENHANCED, list(reversed(changes.records)))

        assert text == ORIGINAL

    def test_reapplying_to_modified_buffer_raises(self, changes):
        """Test that records are only valid against the text they came from."""
        changes.decide("change-3", UserDecision.REJECTED)
        once = ChangeApplicator().apply_text(ENHANCED, changes.records)

        changes.decide("change-1", UserDecision.REJECTED)
        with pytest.raises(InvalidPositionRange):
            ChangeApplicator().apply(once, changes.records)

    def test_overlapping_records_rejected(self):
        text = "abcdef"
        first = ChangeRecord(
            id="a",
            change_type=ChangeType.REPLACEMENT,
            original_text_snippet="X",
            enhanced_text_snippet="bcd",
            original_position_start=1,
            original_position_end=2,
            enhanced_position_start=1,
            enhanced_position_end=4,
            user_decision=UserDecision.REJECTED,
        )
        second = first.model_copy(
            update={
                "id": "b",
                "enhanced_text_snippet": "cde",
                "enhanced_position_start": 2,
                "enhanced_position_end": 5,
            }
        )

        with pytest.raises(InvalidPositionRange):
            reversal_plan(text, [first, second])

    def test_no_records(self):
        assert ChangeApplicator().apply("text", []).text == "text"


class TestChangeRecordValidation:
    def test_create_checks_snippets_against_texts(self):
        with pytest.raises(InvalidPositionRange):
            ChangeRecord.create(
                "abc",
                "abd",
                id="c1",
                change_type=ChangeType.REPLACEMENT,
                original_text_snippet="b",
                enhanced_text_snippet="d",
                original_position_start=1,
                original_position_end=2,
                enhanced_position_start=1,
                enhanced_position_end=2,
            )

    def test_create_rejects_span_length_mismatch(self):
        with pytest.raises(InvalidPositionRange):
            ChangeRecord.create(
                "abc",
                "abd",
                id="c1",
                change_type=ChangeType.REPLACEMENT,
                original_text_snippet="c",
                enhanced_text_snippet="d",
                original_position_start=1,
                original_position_end=3,
                enhanced_position_start=2,
                enhanced_position_end=3,
            )

    def test_change_set_unknown_id(self, changes):
        with pytest.raises(KeyError):
            changes.decide("change-99", UserDecision.REJECTED)
