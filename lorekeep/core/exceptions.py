# lorekeep/core/exceptions.py
"""
All exceptions for lorekeep.

Hierarchy:
    LorekeepError
    ├── JobError
    │   ├── JobAlreadyActive - A non-terminal job already exists for the project
    │   ├── JobNotFound - Unknown job id
    │   └── InvalidTransition - State machine refused a transition
    ├── GatewayError
    │   ├── GatewayUnavailable - Timeout, connection failure, non-2xx status
    │   │   └── RateLimitExceeded - Local rate limiter refused the call
    │   └── GatewayMalformedResponse - Body could not be parsed into the contract
    ├── InvalidPositionRange - Change record spans do not match the text pair
    ├── StaleFingerprintStoreUnavailable - Fingerprint store could not be read
    └── CommitError - Knowledge + fingerprint commit unit failed

Local validation errors are raised to the caller. Gateway errors are caught
at the job state machine and merge arbiter boundaries and converted into
their safe fallbacks.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LorekeepError(Exception):
    """Base class for all lorekeep errors."""

    pass


# =============================================================================
# Job Errors
# =============================================================================


class JobError(LorekeepError):
    """Processing job failure."""

    pass


class JobAlreadyActive(JobError):
    """A job is already in a non-terminal state for this project."""

    def __init__(self, project_id: str, active_job_id: str):
        self.project_id = project_id
        self.active_job_id = active_job_id
        super().__init__(
            f"Project '{project_id}' already has an active job ({active_job_id})"
        )


class JobNotFound(JobError, KeyError):
    """No job exists with the given id."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")

    def __str__(self) -> str:
        return self.args[0]


class InvalidTransition(JobError):
    """A state transition not allowed by the job lifecycle."""

    def __init__(self, job_id: str, from_state: str, to_state: str):
        self.job_id = job_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Job {job_id}: cannot move from '{from_state}' to '{to_state}'")


# =============================================================================
# Gateway Errors
# =============================================================================


class GatewayError(LorekeepError):
    """External reasoning service call failed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.details = details or {}
        super().__init__(message)


class GatewayUnavailable(GatewayError):
    """Service unreachable, timed out, or returned an error status."""

    pass


class RateLimitExceeded(GatewayUnavailable):
    """Local rate limiter refused the request."""

    pass


class GatewayMalformedResponse(GatewayError):
    """Response body could not be parsed into the expected contract."""

    pass


# =============================================================================
# Change Tracking Errors
# =============================================================================


class InvalidPositionRange(LorekeepError, ValueError):
    """A change record's spans do not validate against its text pair."""

    pass


# =============================================================================
# Storage Errors
# =============================================================================


class StaleFingerprintStoreUnavailable(LorekeepError):
    """The fingerprint store could not be read."""

    pass


class CommitError(LorekeepError):
    """Writing knowledge items and fingerprints as one unit failed."""

    pass


__all__ = [
    "LorekeepError",
    # Jobs
    "JobError",
    "JobAlreadyActive",
    "JobNotFound",
    "InvalidTransition",
    # Gateway
    "GatewayError",
    "GatewayUnavailable",
    "RateLimitExceeded",
    "GatewayMalformedResponse",
    # Changes
    "InvalidPositionRange",
    # Storage
    "StaleFingerprintStoreUnavailable",
    "CommitError",
]
