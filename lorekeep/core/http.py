# lorekeep/core/http.py
"""
Centralized async HTTP client factory for the reasoning services.

Both the extraction gateway and the merge evaluation service are plain
JSON-over-HTTP endpoints. This module gives them one way to build
clients and one way to turn transport failures into GatewayUnavailable.

Usage:
    from lorekeep.core.http import create_async_api_client, raise_for_status

    async with create_async_api_client(base_url, api_key=key, timeout=60) as client:
        response = await client.post("/evaluate-merge", json=payload)
        raise_for_status(response, provider="merge", endpoint="/evaluate-merge")
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from lorekeep.core.exceptions import GatewayUnavailable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUTS = {
    "default": 30.0,
    "extraction": 120.0,  # multi-chunk extraction is slow
    "merge": 60.0,
}

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def create_async_api_client(
    base_url: str,
    api_key: Optional[str] = None,
    timeout: Optional[float] = None,
    timeout_type: str = "default",
    headers: Optional[Dict[str, str]] = None,
    auth_header: str = "Authorization",
    auth_scheme: str = "Bearer",
    **kwargs: Any,
) -> httpx.AsyncClient:
    """
    Create an async HTTP client for a service.

    Args:
        base_url: Base URL for the service
        api_key: API key for authentication (optional)
        timeout: Request timeout in seconds (or use timeout_type)
        timeout_type: Preset timeout ("default", "extraction", "merge")
        headers: Additional headers
        auth_header: Header name for authentication
        auth_scheme: Authentication scheme
        **kwargs: Passed through to httpx.AsyncClient (e.g. transport)
    """
    if timeout is None:
        timeout = DEFAULT_TIMEOUTS.get(timeout_type, DEFAULT_TIMEOUTS["default"])

    final_headers = dict(DEFAULT_HEADERS)
    if api_key:
        final_headers[auth_header] = f"{auth_scheme} {api_key}"
    if headers:
        final_headers.update(headers)

    logger.debug(f"Created async HTTP client for {base_url} (timeout={timeout}s)")

    return httpx.AsyncClient(
        base_url=base_url,
        headers=final_headers,
        timeout=timeout,
        **kwargs,
    )


def handle_api_error(
    exc: Exception,
    provider: str = "unknown",
    endpoint: str = "",
) -> GatewayUnavailable:
    """
    Convert an httpx exception to a GatewayUnavailable with details.

    Example:
        try:
            response = await client.post("/extract-knowledge", json=payload)
        except httpx.HTTPError as exc:
            raise handle_api_error(exc, provider="extraction") from exc
    """
    details: Dict[str, Any] = {"provider": provider, "endpoint": endpoint}

    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        details["status_code"] = status_code
        details["body"] = exc.response.text[:200] if exc.response.text else None
        return GatewayUnavailable(f"{provider} request failed (HTTP {status_code})", details)

    if isinstance(exc, httpx.TimeoutException):
        details["timeout"] = True
        return GatewayUnavailable(f"{provider} request timed out", details)

    if isinstance(exc, httpx.ConnectError):
        details["error"] = str(exc)
        return GatewayUnavailable(f"Failed to connect to {provider}", details)

    details["error"] = str(exc)
    return GatewayUnavailable(f"{provider} request failed: {exc}", details)


def raise_for_status(
    response: httpx.Response,
    provider: str = "unknown",
    endpoint: str = "",
) -> None:
    """Raise GatewayUnavailable if the response has an error status."""
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise handle_api_error(exc, provider=provider, endpoint=endpoint) from exc


__all__ = [
    "DEFAULT_TIMEOUTS",
    "DEFAULT_HEADERS",
    "create_async_api_client",
    "handle_api_error",
    "raise_for_status",
]
