# lorekeep/ingest/state/manager.py
"""
Fingerprint store implementations.

Key responsibilities:
- Read fingerprint records for a project
- Upsert records after a successful analysis
- snapshot()/restore() so a job can commit knowledge and fingerprints
  as one unit

Key non-responsibilities:
- NO staleness logic (see lorekeep.ingest.staleness)
- NO job logic

A store that cannot be read raises StaleFingerprintStoreUnavailable. It
never pretends to be empty.
"""

from __future__ import annotations

import copy
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol, runtime_checkable

from pydantic import ValidationError

from lorekeep.core.exceptions import StaleFingerprintStoreUnavailable
from lorekeep.core.paths import LorePaths
from lorekeep.logging.tags import STORAGE

from .schema import FingerprintRecord, FingerprintState

logger = logging.getLogger(__name__)


@runtime_checkable
class FingerprintStore(Protocol):
    """What the staleness detector and job commit need from a store."""

    def records_for(self, project_id: str) -> Dict[str, FingerprintRecord]:
        """Records for a project keyed by document id."""
        ...

    def upsert(self, records: Iterable[FingerprintRecord]) -> None:
        """Insert or overwrite records and persist them."""
        ...

    def snapshot(self) -> object:
        """Opaque copy of the current state."""
        ...

    def restore(self, snapshot: object) -> None:
        """Return to a state captured by snapshot()."""
        ...


class InMemoryFingerprintStore:
    """Fingerprint store held in a dict. Used by tests and the API default."""

    def __init__(self, records: Optional[Iterable[FingerprintRecord]] = None) -> None:
        self._records: Dict[str, FingerprintRecord] = {}
        for record in records or []:
            self._records[record.document_id] = record

    def records_for(self, project_id: str) -> Dict[str, FingerprintRecord]:
        return {k: r for k, r in self._records.items() if r.project_id == project_id}

    def get(self, document_id: str) -> Optional[FingerprintRecord]:
        return self._records.get(document_id)

    def upsert(self, records: Iterable[FingerprintRecord]) -> None:
        for record in records:
            self._records[record.document_id] = record

    def snapshot(self) -> Dict[str, FingerprintRecord]:
        return copy.deepcopy(self._records)

    def restore(self, snapshot: object) -> None:
        self._records = copy.deepcopy(snapshot)  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._records)


class FingerprintStateManager:
    """
    Manages {workspace}/fingerprints.json.

    Usage:
        manager = FingerprintStateManager()
        records = manager.records_for("project-1")
        manager.upsert([FingerprintRecord(...)])   # saves immediately
    """

    def __init__(self, state_path: Optional[Path] = None) -> None:
        """
        Initialize the state manager.

        Args:
            state_path: Path to fingerprints.json. If None, uses LorePaths.fingerprints()
        """
        self._path = Path(state_path) if state_path is not None else LorePaths.fingerprints()
        self._state: Optional[FingerprintState] = None
        self._dirty = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def state(self) -> FingerprintState:
        """Get current state, loading if necessary."""
        if self._state is None:
            self.load()
        assert self._state is not None
        return self._state

    def load(self) -> FingerprintState:
        """
        Load state from disk.

        A missing file is a fresh store. An unreadable or corrupt file is
        not: it raises StaleFingerprintStoreUnavailable.
        """
        if not self._path.exists():
            logger.info(f"{STORAGE} No fingerprint store at {self._path}, starting empty")
            self._state = FingerprintState()
            self._dirty = False
            return self._state

        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            self._state = FingerprintState.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"{STORAGE} Fingerprint store unreadable: {e}")
            raise StaleFingerprintStoreUnavailable(
                f"Fingerprint store {self._path} could not be read: {e}"
            ) from e

        self._dirty = False
        logger.debug(f"{STORAGE} Loaded {len(self._state.records)} fingerprints from {self._path}")
        return self._state

    def save(self) -> None:
        """Write state atomically via a temp file. No-op when unchanged."""
        if self._state is None or not self._dirty:
            return

        self._state.updated_at = datetime.now(timezone.utc)
        self._path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = self._path.with_suffix(".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as f:
                json.dump(self._state.model_dump(mode="json"), f, indent=2)
            temp_path.replace(self._path)
            self._dirty = False
            logger.debug(f"{STORAGE} Saved fingerprint store to {self._path}")
        except Exception:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def records_for(self, project_id: str) -> Dict[str, FingerprintRecord]:
        return self.state.for_project(project_id)

    def upsert(self, records: Iterable[FingerprintRecord]) -> None:
        for record in records:
            self.state.records[record.document_id] = record
            self._dirty = True
        self.save()

    def snapshot(self) -> FingerprintState:
        return self.state.model_copy(deep=True)

    def restore(self, snapshot: object) -> None:
        assert isinstance(snapshot, FingerprintState)
        self._state = snapshot.model_copy(deep=True)
        self._dirty = True
        self.save()


__all__ = ["FingerprintStore", "InMemoryFingerprintStore", "FingerprintStateManager"]
