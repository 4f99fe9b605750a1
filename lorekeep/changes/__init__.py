# lorekeep/changes/__init__.py
"""Change tracking between original and enhanced text, and selective revert."""

from .applicator import ApplyResult, ChangeApplicator
from .enhancement import (
    EnhancementRecord,
    EnhancementService,
    EnhancementStatus,
    EnhancementStore,
    InMemoryEnhancementStore,
)
from .models import ChangeRecord, ChangeSet, ChangeType, SemanticImpact, UserDecision
from .tracker import ChangeTracker

__all__ = [
    "ChangeType",
    "UserDecision",
    "SemanticImpact",
    "ChangeRecord",
    "ChangeSet",
    "ChangeTracker",
    "ChangeApplicator",
    "ApplyResult",
    "EnhancementStatus",
    "EnhancementRecord",
    "EnhancementStore",
    "InMemoryEnhancementStore",
    "EnhancementService",
]
