# lorekeep/knowledge/__init__.py
"""Knowledge items, merge arbitration and the merge audit trail."""

from .arbiter import HttpMergeEvaluationService, MergeArbiter, MergeEvaluationService
from .audit import MergeAuditEntry, MergeAuditLog
from .models import (
    ExtractionMethod,
    KnowledgeCategory,
    KnowledgeItem,
    MergeAction,
    MergeCandidate,
    MergeDecision,
)
from .neighbors import NameSimilaritySelector
from .store import (
    InMemoryKnowledgeStore,
    JsonKnowledgeStore,
    KnowledgeStore,
    KnowledgeWriter,
    StagedKnowledge,
)

__all__ = [
    "KnowledgeCategory",
    "ExtractionMethod",
    "KnowledgeItem",
    "MergeCandidate",
    "MergeAction",
    "MergeDecision",
    "MergeArbiter",
    "MergeEvaluationService",
    "HttpMergeEvaluationService",
    "MergeAuditLog",
    "MergeAuditEntry",
    "NameSimilaritySelector",
    "KnowledgeStore",
    "InMemoryKnowledgeStore",
    "JsonKnowledgeStore",
    "StagedKnowledge",
    "KnowledgeWriter",
]
