# lorekeep/changes/models.py
"""
Change records between an original and an enhanced text.

Every record is addressable in both coordinate spaces:

    original[original_position_start:original_position_end] == original_text_snippet
    enhanced[enhanced_position_start:enhanced_position_end] == enhanced_text_snippet

Positions are frozen against the text pair the record was computed from.
Only user_decision changes after creation.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from lorekeep.core.exceptions import InvalidPositionRange


class ChangeType(str, Enum):
    INSERTION = "insertion"
    DELETION = "deletion"
    REPLACEMENT = "replacement"
    GRAMMAR = "grammar"
    STRUCTURE = "structure"
    DIALOGUE = "dialogue"
    STYLE = "style"
    PUNCTUATION = "punctuation"
    WHITESPACE = "whitespace"
    CAPITALIZATION = "capitalization"


class UserDecision(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SemanticImpact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ChangeRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    change_type: ChangeType
    original_text_snippet: str
    enhanced_text_snippet: str
    original_position_start: int = Field(..., ge=0)
    original_position_end: int = Field(..., ge=0)
    enhanced_position_start: int = Field(..., ge=0)
    enhanced_position_end: int = Field(..., ge=0)
    confidence_score: float = Field(0.8, ge=0.0, le=1.0)
    semantic_impact: SemanticImpact = SemanticImpact.MEDIUM
    user_decision: UserDecision = UserDecision.PENDING

    @model_validator(mode="after")
    def _spans_match_snippets(self) -> "ChangeRecord":
        if self.original_position_end < self.original_position_start:
            raise ValueError("original span end precedes start")
        if self.enhanced_position_end < self.enhanced_position_start:
            raise ValueError("enhanced span end precedes start")
        if self.original_position_end - self.original_position_start != len(self.original_text_snippet):
            raise ValueError("original span length does not match snippet")
        if self.enhanced_position_end - self.enhanced_position_start != len(self.enhanced_text_snippet):
            raise ValueError("enhanced span length does not match snippet")
        return self

    @classmethod
    def create(cls, original: str, enhanced: str, **fields) -> "ChangeRecord":
        """
        Build a record and check it against its text pair.

        Raises:
            InvalidPositionRange: If the spans do not match the texts
        """
        try:
            record = cls(**fields)
        except ValidationError as e:
            raise InvalidPositionRange(f"Invalid change record: {e}") from e
        record.validate_against(original, enhanced)
        return record

    def validate_against(self, original: str, enhanced: str) -> None:
        """Raises InvalidPositionRange if either span does not match its text."""
        if self.original_position_end > len(original) or (
            original[self.original_position_start:self.original_position_end]
            != self.original_text_snippet
        ):
            raise InvalidPositionRange(
                f"Change {self.id}: original span "
                f"[{self.original_position_start}:{self.original_position_end}] does not match snippet"
            )
        if self.enhanced_position_end > len(enhanced) or (
            enhanced[self.enhanced_position_start:self.enhanced_position_end]
            != self.enhanced_text_snippet
        ):
            raise InvalidPositionRange(
                f"Change {self.id}: enhanced span "
                f"[{self.enhanced_position_start}:{self.enhanced_position_end}] does not match snippet"
            )


class ChangeSet(BaseModel):
    """Records computed from one original/enhanced pair."""

    model_config = ConfigDict(extra="forbid")

    original: str
    enhanced: str
    records: List[ChangeRecord] = Field(default_factory=list)

    def get(self, record_id: str) -> ChangeRecord:
        for record in self.records:
            if record.id == record_id:
                return record
        raise KeyError(f"Change not found: {record_id}")

    def decide(self, record_id: str, decision: UserDecision) -> ChangeRecord:
        record = self.get(record_id)
        record.user_decision = UserDecision(decision)
        return record

    def decide_many(self, record_ids: Iterable[str], decision: UserDecision) -> None:
        for record_id in record_ids:
            self.decide(record_id, decision)

    def decide_all(self, decision: UserDecision) -> None:
        for record in self.records:
            record.user_decision = UserDecision(decision)

    def with_decision(self, decision: UserDecision) -> List[ChangeRecord]:
        return [r for r in self.records if r.user_decision == decision]

    def counts(self) -> Dict[str, int]:
        result = {d.value: 0 for d in UserDecision}
        for record in self.records:
            result[record.user_decision.value] += 1
        return result

    def by_type(self) -> Dict[str, int]:
        result: Dict[str, int] = {}
        for record in self.records:
            result[record.change_type.value] = result.get(record.change_type.value, 0) + 1
        return result

    def find(self, record_id: str) -> Optional[ChangeRecord]:
        return next((r for r in self.records if r.id == record_id), None)


__all__ = ["ChangeType", "UserDecision", "SemanticImpact", "ChangeRecord", "ChangeSet"]
