# lorekeep/jobs/models.py
"""
ProcessingJob and its lifecycle.

    pending -> thinking -> analyzing -> extracting -> done

    pending | thinking | analyzing | extracting -> failed

done and failed are terminal. No state is ever revisited.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobState(str, Enum):
    PENDING = "pending"
    THINKING = "thinking"
    ANALYZING = "analyzing"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"


class JobType(str, Enum):
    FULL_PROJECT = "full_project"
    INCREMENTAL = "incremental"
    FACT_EXTRACTION = "fact_extraction"


ACTIVE_STATES: FrozenSet[JobState] = frozenset(
    {JobState.PENDING, JobState.THINKING, JobState.ANALYZING, JobState.EXTRACTING}
)
TERMINAL_STATES: FrozenSet[JobState] = frozenset({JobState.DONE, JobState.FAILED})

TRANSITIONS: Dict[JobState, FrozenSet[JobState]] = {
    JobState.PENDING: frozenset({JobState.THINKING, JobState.FAILED}),
    JobState.THINKING: frozenset({JobState.ANALYZING, JobState.FAILED}),
    JobState.ANALYZING: frozenset({JobState.EXTRACTING, JobState.FAILED}),
    JobState.EXTRACTING: frozenset({JobState.DONE, JobState.FAILED}),
    JobState.DONE: frozenset(),
    JobState.FAILED: frozenset(),
}

NEXT_STATE: Dict[JobState, JobState] = {
    JobState.PENDING: JobState.THINKING,
    JobState.THINKING: JobState.ANALYZING,
    JobState.ANALYZING: JobState.EXTRACTING,
    JobState.EXTRACTING: JobState.DONE,
}

# (progress_percentage, completed_steps, current_step) on entering a state
PROGRESS: Dict[JobState, tuple] = {
    JobState.PENDING: (0, 0, "Queued"),
    JobState.THINKING: (10, 1, "Selecting documents"),
    JobState.ANALYZING: (35, 2, "Extracting characters"),
    JobState.EXTRACTING: (70, 3, "Extracting knowledge"),
    JobState.DONE: (100, 4, "Complete"),
}

TOTAL_STEPS = 4


def can_transition(from_state: JobState, to_state: JobState) -> bool:
    return to_state in TRANSITIONS[from_state]


def estimate_processing_time(word_count: int) -> float:
    """Rough seconds estimate: 1.5s per 100 words, at least 10s."""
    return max(10.0, math.ceil(word_count / 100) * 1.5)


class ProcessingJob(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str
    job_type: JobType = JobType.INCREMENTAL
    state: JobState = JobState.PENDING
    processing_options: Dict[str, Any] = Field(default_factory=dict)
    results_summary: Optional[Dict[str, Any]] = None
    error_details: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None

    progress_percentage: int = 0
    current_step: str = "Queued"
    completed_steps: int = 0
    total_steps: int = TOTAL_STEPS

    document_ids: List[str] = Field(default_factory=list)
    input_fingerprints: Dict[str, str] = Field(default_factory=dict)
    stage_results: Dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


__all__ = [
    "utcnow",
    "JobState",
    "JobType",
    "ACTIVE_STATES",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "NEXT_STATE",
    "PROGRESS",
    "TOTAL_STEPS",
    "can_transition",
    "estimate_processing_time",
    "ProcessingJob",
]
