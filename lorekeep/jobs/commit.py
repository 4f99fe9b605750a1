# lorekeep/jobs/commit.py
"""
The commit unit at the end of a job.

Knowledge items and fingerprint records are written together. If either
write fails both stores are restored from snapshots taken just before,
so a failed run never leaves fingerprints claiming the documents were
analysed.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from lorekeep.core.exceptions import CommitError
from lorekeep.ingest.state import FingerprintRecord, FingerprintStore
from lorekeep.knowledge.models import KnowledgeItem
from lorekeep.knowledge.store import KnowledgeStore
from lorekeep.logging.tags import STORAGE

logger = logging.getLogger(__name__)


class CommitUnit:
    def __init__(self, knowledge_store: KnowledgeStore, fingerprint_store: FingerprintStore) -> None:
        self.knowledge_store = knowledge_store
        self.fingerprint_store = fingerprint_store

    def _downgrades_user_edit(self, item: KnowledgeItem) -> bool:
        stored = self.knowledge_store.get(item.id)
        return stored is not None and stored.is_user_corrected and not item.is_user_corrected

    def commit(
        self,
        items: Iterable[KnowledgeItem],
        fingerprints: Iterable[FingerprintRecord],
    ) -> None:
        """
        Write items and fingerprints.

        Items that would overwrite a user correction made while the job
        was running are skipped.

        Raises:
            CommitError: If any write failed; both stores were restored
        """
        records: List[FingerprintRecord] = list(fingerprints)
        to_write: List[KnowledgeItem] = []
        for item in items:
            if self._downgrades_user_edit(item):
                logger.info(f"{STORAGE} keeping user correction on item {item.id}")
                continue
            to_write.append(item)

        knowledge_snapshot = self.knowledge_store.snapshot()
        fingerprint_snapshot = self.fingerprint_store.snapshot()
        try:
            self.knowledge_store.upsert(to_write)
            self.fingerprint_store.upsert(records)
        except Exception as e:
            logger.warning(f"{STORAGE} commit failed, restoring snapshots: {e}")
            self.knowledge_store.restore(knowledge_snapshot)
            self.fingerprint_store.restore(fingerprint_snapshot)
            raise CommitError(f"Commit failed: {e}") from e

        logger.info(
            f"{STORAGE} committed {len(to_write)} knowledge items, {len(records)} fingerprints"
        )


__all__ = ["CommitUnit"]
