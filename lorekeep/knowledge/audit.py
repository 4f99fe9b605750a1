# lorekeep/knowledge/audit.py
"""
Append-only audit trail of merge decisions.

Every arbitration outcome, fallbacks included, gets one entry. Entries
are kept in memory and optionally appended to a JSONL file.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from lorekeep.logging.tags import STORAGE

from .models import MergeAction, MergeCandidate, MergeDecision

logger = logging.getLogger(__name__)


class MergeAuditEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    project_id: Optional[str] = None
    category: str
    candidate_name: str
    action: MergeAction
    reason: str
    confidence: float
    fallback: bool = False
    target_id: Optional[str] = None


class MergeAuditLog:
    """
    Usage:
        audit = MergeAuditLog(LorePaths.merge_audit())
        audit.record(candidate, decision, project_id="p1")
        audit.entries[-1].action
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path is not None else None
        self._entries: List[MergeAuditEntry] = []

    @property
    def entries(self) -> List[MergeAuditEntry]:
        return list(self._entries)

    def record(
        self,
        candidate: MergeCandidate,
        decision: MergeDecision,
        project_id: Optional[str] = None,
    ) -> MergeAuditEntry:
        entry = MergeAuditEntry(
            project_id=project_id,
            category=candidate.category.value,
            candidate_name=candidate.name,
            action=decision.action,
            reason=decision.reason,
            confidence=decision.confidence,
            fallback=decision.fallback,
            target_id=decision.target_id,
        )
        self._entries.append(entry)

        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry.model_dump(mode="json")) + "\n")
            logger.debug(f"{STORAGE} Appended merge audit entry to {self._path}")

        return entry

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["MergeAuditEntry", "MergeAuditLog"]
