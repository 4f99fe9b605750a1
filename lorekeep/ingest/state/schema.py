# lorekeep/ingest/state/schema.py
"""
State schema for the fingerprint store.

One FingerprintRecord per document, created on the first successful
analysis and overwritten on every later one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FingerprintRecord(BaseModel):
    """Last successfully processed fingerprint of one document."""

    model_config = ConfigDict(extra="forbid")

    document_id: str = Field(..., description="Document identifier")
    project_id: str = Field(..., description="Owning project")
    hash: str = Field(..., description="SHA-256 hex digest of the trimmed text")
    processed_at: datetime = Field(default_factory=_utcnow, description="Analysis commit time")

    @field_validator("processed_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


class FingerprintState(BaseModel):
    """Root model for {workspace}/fingerprints.json."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int = Field(default=1, description="Schema version for migrations")
    updated_at: datetime = Field(default_factory=_utcnow, description="Last save time")
    records: Dict[str, FingerprintRecord] = Field(
        default_factory=dict, description="Records keyed by document id"
    )

    def for_project(self, project_id: str) -> Dict[str, FingerprintRecord]:
        return {k: r for k, r in self.records.items() if r.project_id == project_id}


__all__ = ["FingerprintRecord", "FingerprintState"]
