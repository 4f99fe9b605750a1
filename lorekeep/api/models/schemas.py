# lorekeep/api/models/schemas.py
"""Pydantic models for API requests and responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from lorekeep.changes.models import ChangeRecord, UserDecision
from lorekeep.jobs.models import JobType


class HashRequest(BaseModel):
    """Either content or contents."""

    content: Optional[str] = Field(None, description="Single text to fingerprint")
    contents: Optional[List[str]] = Field(None, description="Several texts to fingerprint")


class DocumentIn(BaseModel):
    id: str = Field(..., min_length=1)
    text: str
    last_modified: Optional[datetime] = Field(None, description="Defaults to now")
    title: Optional[str] = None


class RegisterDocumentsRequest(BaseModel):
    documents: List[DocumentIn]


class RegisterDocumentsResponse(BaseModel):
    project_id: str
    registered: int


class StartJobRequest(BaseModel):
    job_type: JobType = Field(JobType.INCREMENTAL, description="full_project, incremental or fact_extraction")
    options: Dict[str, Any] = Field(default_factory=dict, description="Opaque processing options")


class StartJobResponse(BaseModel):
    job_id: str
    state: str
    estimated_seconds: float


class SweepResponse(BaseModel):
    failed_jobs: List[str]
    failed_enhancements: List[str]


class KnowledgeEditRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    evidence: Optional[str] = None
    category: Optional[str] = None
    is_flagged: Optional[bool] = None

    def fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class DiffRequest(BaseModel):
    original: str
    enhanced: str


class DiffResponse(BaseModel):
    records: List[ChangeRecord]
    by_type: Dict[str, int]


class ApplyRequest(BaseModel):
    enhanced: str = Field(..., description="Text the records were computed against")
    records: List[ChangeRecord]


class ApplyResponse(BaseModel):
    text: str
    reverted: List[str]


class BeginEnhancementRequest(BaseModel):
    project_id: str
    document_id: str
    original_text: str


class CompleteEnhancementRequest(BaseModel):
    enhanced_text: str


class DecisionRequest(BaseModel):
    decision: UserDecision


class FinalizeResponse(BaseModel):
    enhancement_id: str
    text: str
