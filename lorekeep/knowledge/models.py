# lorekeep/knowledge/models.py
"""
Knowledge items and merge decisions.

A KnowledgeItem is one fact about the story. Once a human edits an item
its confidence becomes 1.0 and its extraction method user_correction;
nothing automatic ever downgrades it again.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from lorekeep.extraction.models import ExtractedFact


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KnowledgeCategory(str, Enum):
    CHARACTER = "character"
    RELATIONSHIP = "relationship"
    PLOT_THREAD = "plot_thread"
    TIMELINE_EVENT = "timeline_event"
    WORLD_BUILDING = "world_building"
    THEME = "theme"


class ExtractionMethod(str, Enum):
    LLM_DIRECT = "llm_direct"
    LLM_INFERRED = "llm_inferred"
    USER_INPUT = "user_input"
    USER_CORRECTION = "user_correction"


USER_EDITABLE_FIELDS = frozenset({"name", "description", "evidence", "category", "is_flagged"})

LOW_CONFIDENCE_THRESHOLD = 0.5


class KnowledgeItem(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str
    category: KnowledgeCategory
    name: str
    description: str = ""
    confidence_score: float = Field(0.5, ge=0.0, le=1.0)
    is_flagged: bool = False
    is_verified: bool = False
    extraction_method: ExtractionMethod = ExtractionMethod.LLM_DIRECT
    evidence: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_user_corrected(self) -> bool:
        return self.extraction_method == ExtractionMethod.USER_CORRECTION

    @property
    def is_low_confidence(self) -> bool:
        return self.confidence_score < LOW_CONFIDENCE_THRESHOLD

    def apply_user_edit(self, **fields: Any) -> "KnowledgeItem":
        """
        Apply a human edit.

        Upgrades the item to confidence 1.0 / user_correction and marks it
        verified. The upgrade is permanent.

        All fields are validated before any is applied, so a rejected edit
        leaves the item unchanged.

        Raises:
            ValueError: If a field is not user editable or a value is invalid
        """
        unknown = set(fields) - USER_EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {sorted(unknown)}")
        edited = type(self).model_validate({**self.model_dump(), **fields})
        for key in fields:
            setattr(self, key, getattr(edited, key))
        self.confidence_score = 1.0
        self.extraction_method = ExtractionMethod.USER_CORRECTION
        self.is_verified = True
        self.updated_at = _utcnow()
        return self

    def summary_dict(self) -> Dict[str, Any]:
        """Compact view used in merge prompts."""
        data: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "confidence": self.confidence_score,
        }
        if self.evidence:
            data["evidence"] = self.evidence
        data.update(self.details)
        return data


class MergeCandidate(BaseModel):
    """A newly extracted fact waiting for arbitration."""

    model_config = ConfigDict(extra="forbid")

    category: KnowledgeCategory
    name: str
    description: str = ""
    evidence: Optional[str] = None
    confidence_score: float = Field(0.5, ge=0.0, le=1.0)
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_fact(cls, category: str, fact: ExtractedFact) -> "MergeCandidate":
        return cls(
            category=KnowledgeCategory(category),
            name=fact.name,
            description=fact.description,
            evidence=fact.evidence,
            confidence_score=fact.confidence_score,
            details=dict(fact.model_extra or {}),
        )

    def summary_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "confidence": self.confidence_score,
        }
        if self.evidence:
            data["evidence"] = self.evidence
        data.update(self.details)
        return data

    def to_item(self, project_id: str) -> KnowledgeItem:
        return KnowledgeItem(
            project_id=project_id,
            category=self.category,
            name=self.name,
            description=self.description,
            evidence=self.evidence,
            confidence_score=self.confidence_score,
            details=dict(self.details),
        )


class MergeAction(str, Enum):
    MERGE = "merge"
    DISCARD = "discard"
    KEEP_DISTINCT = "keep_distinct"


class MergeDecision(BaseModel):
    """Ephemeral arbitration result. Only its audit entry is persisted."""

    model_config = ConfigDict(extra="forbid")

    action: MergeAction
    reason: str = ""
    confidence: float = Field(..., ge=0.0, le=1.0)
    merged_data: Optional[Dict[str, Any]] = None
    target_id: Optional[str] = None
    fallback: bool = False


__all__ = [
    "KnowledgeCategory",
    "ExtractionMethod",
    "USER_EDITABLE_FIELDS",
    "LOW_CONFIDENCE_THRESHOLD",
    "KnowledgeItem",
    "MergeCandidate",
    "MergeAction",
    "MergeDecision",
]
