# lorekeep/changes/enhancement.py
"""
Enhancement lifecycle: in_progress -> completed | failed.

An enhancement starts when the enhanced text is requested and completes
when it arrives; completion runs the ChangeTracker and stores the change
records. finalize() reconciles the user's decisions into the final text.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from lorekeep.core.exceptions import InvalidTransition
from lorekeep.logging.tags import DIFF

from .applicator import ChangeApplicator
from .models import ChangeRecord, ChangeSet, UserDecision
from .tracker import ChangeTracker

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EnhancementStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class EnhancementRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str
    document_id: str
    status: EnhancementStatus = EnhancementStatus.IN_PROGRESS
    original_text: str
    enhanced_text: Optional[str] = None
    changes: List[ChangeRecord] = Field(default_factory=list)
    final_text: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == EnhancementStatus.IN_PROGRESS

    def change_set(self) -> ChangeSet:
        if self.enhanced_text is None:
            raise ValueError(f"Enhancement {self.id} has no enhanced text yet")
        return ChangeSet(original=self.original_text, enhanced=self.enhanced_text, records=self.changes)


@runtime_checkable
class EnhancementStore(Protocol):
    def get(self, enhancement_id: str) -> EnhancementRecord:
        """Raises KeyError."""
        ...

    def save(self, record: EnhancementRecord) -> None:
        ...

    def list(self, project_id: Optional[str] = None) -> List[EnhancementRecord]:
        ...


class InMemoryEnhancementStore:
    def __init__(self) -> None:
        self._records: Dict[str, EnhancementRecord] = {}

    def get(self, enhancement_id: str) -> EnhancementRecord:
        record = self._records.get(enhancement_id)
        if record is None:
            raise KeyError(f"Enhancement not found: {enhancement_id}")
        return record.model_copy(deep=True)

    def save(self, record: EnhancementRecord) -> None:
        self._records[record.id] = record.model_copy(deep=True)

    def list(self, project_id: Optional[str] = None) -> List[EnhancementRecord]:
        return [
            r.model_copy(deep=True)
            for r in self._records.values()
            if project_id is None or r.project_id == project_id
        ]


class EnhancementService:
    """
    Usage:
        service = EnhancementService(InMemoryEnhancementStore())
        record = service.begin("p1", "chapter-1", original)
        record = service.complete(record.id, enhanced)
        service.decide(record.id, "change-1", UserDecision.REJECTED)
        final = service.finalize(record.id)
    """

    def __init__(
        self,
        store: EnhancementStore,
        tracker: Optional[ChangeTracker] = None,
        applicator: Optional[ChangeApplicator] = None,
        supervisor: Optional[Any] = None,
    ) -> None:
        self.store = store
        self.tracker = tracker or ChangeTracker()
        self.applicator = applicator or ChangeApplicator()
        self.supervisor = supervisor

    def _require_status(self, record: EnhancementRecord, status: EnhancementStatus, action: str) -> None:
        if record.status != status:
            raise InvalidTransition(record.id, record.status.value, action)

    def begin(self, project_id: str, document_id: str, original_text: str) -> EnhancementRecord:
        record = EnhancementRecord(
            project_id=project_id, document_id=document_id, original_text=original_text
        )
        self.store.save(record)
        if self.supervisor is not None:
            self.supervisor.watch_enhancement(record.id)
        logger.info(f"{DIFF} enhancement {record.id} started for {document_id}")
        return record

    def complete(self, enhancement_id: str, enhanced_text: str) -> EnhancementRecord:
        record = self.store.get(enhancement_id)
        self._require_status(record, EnhancementStatus.IN_PROGRESS, EnhancementStatus.COMPLETED.value)

        now = _utcnow()
        record.enhanced_text = enhanced_text
        record.changes = self.tracker.compute(record.original_text, enhanced_text)
        record.status = EnhancementStatus.COMPLETED
        record.updated_at = now
        record.completed_at = now
        self.store.save(record)
        self._unwatch(enhancement_id)
        logger.info(f"{DIFF} enhancement {enhancement_id} completed with {len(record.changes)} changes")
        return record

    def fail(self, enhancement_id: str, message: str) -> EnhancementRecord:
        record = self.store.get(enhancement_id)
        self._require_status(record, EnhancementStatus.IN_PROGRESS, EnhancementStatus.FAILED.value)
        record.status = EnhancementStatus.FAILED
        record.error_message = message
        record.updated_at = _utcnow()
        self.store.save(record)
        self._unwatch(enhancement_id)
        logger.warning(f"{DIFF} enhancement {enhancement_id} failed: {message}")
        return record

    def decide(self, enhancement_id: str, change_id: str, decision: UserDecision) -> ChangeRecord:
        record = self.store.get(enhancement_id)
        self._require_status(record, EnhancementStatus.COMPLETED, "decide")
        change = next((c for c in record.changes if c.id == change_id), None)
        if change is None:
            raise KeyError(f"Change not found: {change_id}")
        change.user_decision = UserDecision(decision)
        self.store.save(record)
        return change

    def finalize(self, enhancement_id: str) -> str:
        """Apply user decisions to the enhanced text and store the result."""
        record = self.store.get(enhancement_id)
        self._require_status(record, EnhancementStatus.COMPLETED, "finalize")
        assert record.enhanced_text is not None
        record.final_text = self.applicator.apply_text(record.enhanced_text, record.changes)
        record.updated_at = _utcnow()
        self.store.save(record)
        return record.final_text

    def _unwatch(self, enhancement_id: str) -> None:
        if self.supervisor is not None:
            self.supervisor.cancel_watch(enhancement_id)


__all__ = [
    "EnhancementStatus",
    "EnhancementRecord",
    "EnhancementStore",
    "InMemoryEnhancementStore",
    "EnhancementService",
]
