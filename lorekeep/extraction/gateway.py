# lorekeep/extraction/gateway.py
"""
ExtractionGateway - the contract to the external reasoning service.

The pipeline only knows the protocol: a request of chunks goes in, a
structured ExtractionResponse comes out, and failures are one of
GatewayUnavailable or GatewayMalformedResponse. HttpExtractionGateway is
the production implementation.
"""

from __future__ import annotations

import logging
import time
from typing import Optional, Protocol, runtime_checkable

import httpx

from lorekeep.core.config import GatewayConfig
from lorekeep.core.http import create_async_api_client, handle_api_error, raise_for_status
from lorekeep.core.ratelimit import SlidingWindowRateLimiter
from lorekeep.logging.tags import GATEWAY

from .models import ExtractionRequest, ExtractionResponse
from .parsing import parse_extraction_response

logger = logging.getLogger(__name__)


@runtime_checkable
class ExtractionGateway(Protocol):
    """Chunks in, structured facts out."""

    async def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        """
        Raises:
            GatewayUnavailable: Timeout, connection failure, error status, rate limit
            GatewayMalformedResponse: Body could not be parsed
        """
        ...


class HttpExtractionGateway:
    """
    POSTs extraction requests to {base_url}{extract_path}.

    Args:
        config: Endpoint settings
        rate_limiter: Optional limiter keyed by project id; a full window
            waits up to the configured timeout for a free slot
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or GatewayConfig()
        self.rate_limiter = rate_limiter
        self._transport = transport

    async def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        if self.rate_limiter is not None:
            await self.rate_limiter.wait_acquire(request.project_id, max_wait=self.config.timeout)

        path = self.config.extract_path
        kwargs = {"transport": self._transport} if self._transport is not None else {}
        start = time.perf_counter()

        async with create_async_api_client(
            self.config.base_url,
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            **kwargs,
        ) as client:
            try:
                response = await client.post(path, json=request.to_payload())
            except httpx.HTTPError as e:
                raise handle_api_error(e, provider="extraction", endpoint=path) from e

        raise_for_status(response, provider="extraction", endpoint=path)
        result = parse_extraction_response(response.text)

        logger.info(
            f"{GATEWAY} {request.extraction_type} project={request.project_id} "
            f"chunks={len(request.chunks)} facts={result.fact_count} "
            f"({time.perf_counter() - start:.2f}s)"
        )
        return result


__all__ = ["ExtractionGateway", "HttpExtractionGateway"]
