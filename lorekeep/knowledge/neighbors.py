# lorekeep/knowledge/neighbors.py
"""
Neighbour selection for merge arbitration.

Chooses the existing items a candidate should be compared against:
same category, name similarity at or above a threshold, closest first.
"""

from __future__ import annotations

from difflib import SequenceMatcher
from typing import Iterable, List, Protocol, Tuple, runtime_checkable

from .models import KnowledgeItem, MergeCandidate


@runtime_checkable
class NeighborSelector(Protocol):
    def select(self, candidate: MergeCandidate, items: Iterable[KnowledgeItem]) -> List[KnowledgeItem]:
        ...


def name_similarity(a: str, b: str) -> float:
    a, b = a.strip().lower(), b.strip().lower()
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return SequenceMatcher(None, a, b).ratio()


class NameSimilaritySelector:
    def __init__(self, threshold: float = 0.7, limit: int = 3) -> None:
        self.threshold = threshold
        self.limit = limit

    def select(self, candidate: MergeCandidate, items: Iterable[KnowledgeItem]) -> List[KnowledgeItem]:
        scored: List[Tuple[float, KnowledgeItem]] = []
        for item in items:
            if item.category != candidate.category:
                continue
            score = name_similarity(candidate.name, item.name)
            if score >= self.threshold:
                scored.append((score, item))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [item for _, item in scored[: self.limit]]


__all__ = ["NeighborSelector", "NameSimilaritySelector", "name_similarity"]
