# lorekeep/knowledge/store.py
"""
Knowledge item storage and the writer that applies merge decisions.

Stores expose snapshot()/restore() so a job can commit knowledge and
fingerprints as one unit. KnowledgeWriter never touches a store directly:
it applies decisions to a StagedKnowledge copy whose changed items are
written in a single upsert at commit time.
"""

from __future__ import annotations

import copy
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, runtime_checkable

from pydantic import TypeAdapter

from lorekeep.core.paths import LorePaths
from lorekeep.logging.tags import STORAGE

from .models import KnowledgeCategory, KnowledgeItem, MergeAction, MergeCandidate, MergeDecision

logger = logging.getLogger(__name__)

_items_adapter = TypeAdapter(List[KnowledgeItem])


@runtime_checkable
class KnowledgeStore(Protocol):
    def list(
        self, project_id: str, category: Optional[KnowledgeCategory] = None
    ) -> List[KnowledgeItem]:
        ...

    def get(self, item_id: str) -> Optional[KnowledgeItem]:
        ...

    def upsert(self, items: Iterable[KnowledgeItem]) -> None:
        ...

    def snapshot(self) -> object:
        ...

    def restore(self, snapshot: object) -> None:
        ...


class InMemoryKnowledgeStore:
    """Knowledge items in a dict keyed by id. Reads and writes copy items."""

    def __init__(self, items: Optional[Iterable[KnowledgeItem]] = None) -> None:
        self._items: Dict[str, KnowledgeItem] = {}
        for item in items or []:
            self._items[item.id] = item.model_copy(deep=True)

    def list(
        self, project_id: str, category: Optional[KnowledgeCategory] = None
    ) -> List[KnowledgeItem]:
        return [
            i.model_copy(deep=True)
            for i in self._items.values()
            if i.project_id == project_id and (category is None or i.category == category)
        ]

    def get(self, item_id: str) -> Optional[KnowledgeItem]:
        item = self._items.get(item_id)
        return item.model_copy(deep=True) if item is not None else None

    def upsert(self, items: Iterable[KnowledgeItem]) -> None:
        for item in items:
            self._items[item.id] = item.model_copy(deep=True)

    def snapshot(self) -> Dict[str, KnowledgeItem]:
        return copy.deepcopy(self._items)

    def restore(self, snapshot: object) -> None:
        self._items = copy.deepcopy(snapshot)  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._items)


class JsonKnowledgeStore(InMemoryKnowledgeStore):
    """
    Knowledge items persisted to {workspace}/knowledge.json.

    Every upsert/restore rewrites the file atomically.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        super().__init__()
        self._path = Path(path) if path is not None else LorePaths.knowledge()
        if self._path.exists():
            with self._path.open("r", encoding="utf-8") as f:
                for item in _items_adapter.validate_python(json.load(f)):
                    self._items[item.id] = item
            logger.debug(f"{STORAGE} Loaded {len(self._items)} knowledge items from {self._path}")

    @property
    def path(self) -> Path:
        return self._path

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as f:
                json.dump(
                    _items_adapter.dump_python(list(self._items.values()), mode="json"),
                    f,
                    indent=2,
                )
            temp_path.replace(self._path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def upsert(self, items: Iterable[KnowledgeItem]) -> None:
        super().upsert(items)
        self._save()

    def restore(self, snapshot: object) -> None:
        super().restore(snapshot)
        self._save()


class StagedKnowledge:
    """
    Working copy of one project's knowledge during a job.

    Arbitration reads neighbours from here so facts kept earlier in the
    same run are visible to later candidates.
    """

    def __init__(self, project_id: str, items: Iterable[KnowledgeItem]) -> None:
        self.project_id = project_id
        self._items: Dict[str, KnowledgeItem] = {i.id: i.model_copy(deep=True) for i in items}
        self._changed: Dict[str, KnowledgeItem] = {}

    @classmethod
    def from_store(cls, store: KnowledgeStore, project_id: str) -> "StagedKnowledge":
        return cls(project_id, store.list(project_id))

    def items(self, category: Optional[KnowledgeCategory] = None) -> List[KnowledgeItem]:
        return [i for i in self._items.values() if category is None or i.category == category]

    def get(self, item_id: str) -> Optional[KnowledgeItem]:
        return self._items.get(item_id)

    def put(self, item: KnowledgeItem) -> None:
        self._items[item.id] = item
        self._changed[item.id] = item

    @property
    def changed(self) -> List[KnowledgeItem]:
        return list(self._changed.values())

    def existing_knowledge(self) -> Dict[str, List[Dict]]:
        """Compact per-category view sent to the extraction service."""
        grouped: Dict[str, List[Dict]] = {}
        for item in self._items.values():
            grouped.setdefault(item.category.value, []).append(item.summary_dict())
        return grouped


class KnowledgeWriter:
    """
    Applies merge decisions to staged knowledge.

    - merge: update the target item with mergedData (description,
      evidence) and the higher confidence. User-corrected targets keep
      their text and method.
    - discard: drop the candidate.
    - keep_distinct: insert the candidate as a new item.
    """

    def apply(
        self,
        staged: StagedKnowledge,
        candidate: MergeCandidate,
        decision: MergeDecision,
    ) -> Optional[KnowledgeItem]:
        if decision.action == MergeAction.DISCARD:
            return None

        target = staged.get(decision.target_id) if decision.target_id else None
        if decision.action == MergeAction.MERGE and target is not None:
            merged = target.model_copy(deep=True)
            if not merged.is_user_corrected:
                data = decision.merged_data or {}
                description = data.get("description")
                evidence = data.get("evidence")
                merged.description = str(description) if description else (
                    merged.description or candidate.description
                )
                if evidence:
                    merged.evidence = str(evidence)
                elif candidate.evidence and not merged.evidence:
                    merged.evidence = candidate.evidence
                merged.confidence_score = max(merged.confidence_score, candidate.confidence_score)
            merged.updated_at = datetime.now(timezone.utc)
            staged.put(merged)
            return merged

        item = candidate.to_item(staged.project_id)
        staged.put(item)
        return item


__all__ = [
    "KnowledgeStore",
    "InMemoryKnowledgeStore",
    "JsonKnowledgeStore",
    "StagedKnowledge",
    "KnowledgeWriter",
]
