# lorekeep/api/error_handlers.py
"""
API error handling utilities.

Provides a decorator to standardize exception handling across all API routes,
reducing boilerplate and ensuring consistent error responses.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Callable, TypeVar

from fastapi import HTTPException

from lorekeep.core.exceptions import (
    GatewayError,
    InvalidTransition,
    JobAlreadyActive,
    JobNotFound,
    StaleFingerprintStoreUnavailable,
)
from lorekeep.logging.tags import API

logger = logging.getLogger(__name__)

T = TypeVar("T")


def handle_api_errors(fn: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator for standardized API error handling.

    Maps exceptions to HTTP status codes:
    - JobAlreadyActive -> 409 Conflict
    - InvalidTransition -> 409 Conflict
    - JobNotFound / KeyError -> 404 Not Found
    - InvalidPositionRange / ValueError -> 400 Bad Request
    - StaleFingerprintStoreUnavailable -> 503 Service Unavailable
    - GatewayError -> 502 Bad Gateway
    - HTTPException -> Re-raised as-is
    - Exception -> 500 Internal Server Error

    Usage:
        @router.get("/jobs/{job_id}")
        @handle_api_errors
        async def get_job(job_id: str):
            return store.get(job_id)
    """

    @wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except HTTPException:
            raise
        except JobAlreadyActive as e:
            raise HTTPException(
                status_code=409,
                detail={"error": str(e), "activeJobId": e.active_job_id},
            )
        except InvalidTransition as e:
            raise HTTPException(status_code=409, detail=str(e))
        except JobNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        except KeyError as e:
            detail = str(e).strip("'\"") if str(e) else "Resource not found"
            raise HTTPException(status_code=404, detail=detail)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except StaleFingerprintStoreUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e))
        except GatewayError as e:
            logger.warning(f"{API} upstream failure in {fn.__name__}: {e}")
            raise HTTPException(status_code=502, detail=str(e))
        except Exception as e:
            logger.exception(f"{API} Unexpected error in {fn.__name__}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    return wrapper


__all__ = ["handle_api_errors"]
