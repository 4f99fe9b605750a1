# lorekeep/ingest/state/__init__.py
"""Fingerprint store: schema and implementations."""

from .manager import FingerprintStateManager, FingerprintStore, InMemoryFingerprintStore
from .schema import FingerprintRecord, FingerprintState

__all__ = [
    "FingerprintRecord",
    "FingerprintState",
    "FingerprintStore",
    "FingerprintStateManager",
    "InMemoryFingerprintStore",
]
