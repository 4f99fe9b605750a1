# lorekeep/jobs/__init__.py
"""Processing jobs: lifecycle, state machine, status, timeout supervision."""

from .events import InMemoryStatusBus, PollingStatusFeed, StatusBus, StatusEvent
from .machine import JobStateMachine
from .models import JobState, JobType, ProcessingJob, estimate_processing_time
from .status import AnalysisStatusReporter
from .store import InMemoryJobStore, JobStore, JsonJobStore
from .supervisor import SweepResult, TimeoutSupervisor

__all__ = [
    "JobState",
    "JobType",
    "ProcessingJob",
    "estimate_processing_time",
    "JobStore",
    "InMemoryJobStore",
    "JsonJobStore",
    "JobStateMachine",
    "StatusBus",
    "StatusEvent",
    "InMemoryStatusBus",
    "PollingStatusFeed",
    "AnalysisStatusReporter",
    "TimeoutSupervisor",
    "SweepResult",
]
