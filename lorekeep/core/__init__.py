# lorekeep/core/__init__.py
"""
Core infrastructure: configuration, paths, errors, HTTP, rate limiting.
"""

from .exceptions import (
    CommitError,
    GatewayError,
    GatewayMalformedResponse,
    GatewayUnavailable,
    InvalidPositionRange,
    InvalidTransition,
    JobAlreadyActive,
    JobError,
    JobNotFound,
    LorekeepError,
    RateLimitExceeded,
    StaleFingerprintStoreUnavailable,
)
from .paths import LorePaths

__all__ = [
    "LorePaths",
    "LorekeepError",
    "JobError",
    "JobAlreadyActive",
    "JobNotFound",
    "InvalidTransition",
    "GatewayError",
    "GatewayUnavailable",
    "RateLimitExceeded",
    "GatewayMalformedResponse",
    "InvalidPositionRange",
    "StaleFingerprintStoreUnavailable",
    "CommitError",
]
