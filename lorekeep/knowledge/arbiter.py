# lorekeep/knowledge/arbiter.py
"""
MergeArbiter - decides merge / discard / keep_distinct for a candidate fact.

Rules:
- No nearby existing item: keep_distinct with confidence 1.0.
- Otherwise the decision is delegated to the merge evaluation service.
  A well-formed answer is validated: an unknown action becomes
  keep_distinct, a missing or out-of-range confidence becomes 0.7.
- An optional rate limiter makes evaluations wait for a free slot;
  a full window delays a decision, it never turns it into a fallback.
- Any exception from the service, a timeout, or an unparseable
  answer: keep_distinct.
  A fallback is never merge and never discard.
- Every decision, fallbacks included, goes to the audit log.

No service error propagates out of decide().
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

import httpx

from lorekeep.core.config import ArbiterConfig
from lorekeep.core.exceptions import GatewayError
from lorekeep.core.http import create_async_api_client, handle_api_error, raise_for_status
from lorekeep.core.ratelimit import SlidingWindowRateLimiter
from lorekeep.extraction.parsing import parse_json_object
from lorekeep.logging.tags import MERGE
from lorekeep.prompts.merge import build_merge_prompt

from .audit import MergeAuditLog
from .models import KnowledgeItem, MergeAction, MergeCandidate, MergeDecision
from .neighbors import NameSimilaritySelector, NeighborSelector
from .store import StagedKnowledge

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.7
FALLBACK_CONFIDENCE = 0.5
NO_NEIGHBOUR_CONFIDENCE = 1.0

_VALID_ACTIONS = {a.value for a in MergeAction}


@runtime_checkable
class MergeEvaluationService(Protocol):
    """Backing service. Returns the raw response body."""

    async def evaluate(self, payload: Dict[str, Any]) -> str:
        """
        Raises:
            GatewayUnavailable: Timeout, connection failure, error status
        """
        ...


class HttpMergeEvaluationService:
    """POSTs {prompt, itemType, options} to {base_url}{evaluate_path}."""

    def __init__(
        self,
        config: Optional[ArbiterConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or ArbiterConfig()
        self._transport = transport

    async def evaluate(self, payload: Dict[str, Any]) -> str:
        path = self.config.evaluate_path
        kwargs = {"transport": self._transport} if self._transport is not None else {}
        async with create_async_api_client(
            self.config.base_url,
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            **kwargs,
        ) as client:
            try:
                response = await client.post(path, json=payload)
            except httpx.HTTPError as e:
                raise handle_api_error(e, provider="merge", endpoint=path) from e

        raise_for_status(response, provider="merge", endpoint=path)
        return response.text


def _validated_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    if not 0.0 <= float(value) <= 1.0:
        return DEFAULT_CONFIDENCE
    return float(value)


def decision_from_payload(data: Dict[str, Any], target: KnowledgeItem) -> MergeDecision:
    """
    Validate a well-formed service answer.

    Accepts either {action, reason, confidence, mergedData} or the same
    object wrapped as {success, decision: {...}}.
    """
    if isinstance(data.get("decision"), dict):
        data = data["decision"]

    raw_action = data.get("action")
    if raw_action in _VALID_ACTIONS:
        action = MergeAction(raw_action)
        reason = str(data.get("reason") or "")
    else:
        action = MergeAction.KEEP_DISTINCT
        reason = f"Invalid action {raw_action!r} - defaulting to keep distinct"

    merged = data.get("mergedData")
    return MergeDecision(
        action=action,
        reason=reason,
        confidence=_validated_confidence(data.get("confidence")),
        merged_data=merged if isinstance(merged, dict) and action == MergeAction.MERGE else None,
        target_id=target.id if action != MergeAction.KEEP_DISTINCT else None,
    )


def fallback_decision(reason: str) -> MergeDecision:
    return MergeDecision(
        action=MergeAction.KEEP_DISTINCT,
        reason=reason,
        confidence=FALLBACK_CONFIDENCE,
        fallback=True,
    )


class MergeArbiter:
    """
    Usage:
        arbiter = MergeArbiter(service, MergeAuditLog())
        decision = await arbiter.decide(candidate, neighbours)
    """

    def __init__(
        self,
        service: MergeEvaluationService,
        audit_log: Optional[MergeAuditLog] = None,
        config: Optional[ArbiterConfig] = None,
        selector: Optional[NeighborSelector] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
    ) -> None:
        self.service = service
        self.rate_limiter = rate_limiter
        self.audit_log = audit_log if audit_log is not None else MergeAuditLog()
        self.config = config or ArbiterConfig()
        self.selector = selector or NameSimilaritySelector(self.config.similarity_threshold)

    def build_request(
        self, candidate: MergeCandidate, neighbours: Sequence[KnowledgeItem]
    ) -> Dict[str, Any]:
        item_type = candidate.category.value
        return {
            "prompt": build_merge_prompt(
                item_type,
                candidate.summary_dict(),
                [n.summary_dict() for n in neighbours],
            ),
            "itemType": item_type,
            "options": {
                "temperature": self.config.temperature,
                "maxTokens": self.config.max_tokens,
            },
        }

    async def _evaluate(
        self, candidate: MergeCandidate, neighbours: Sequence[KnowledgeItem]
    ) -> MergeDecision:
        payload = self.build_request(candidate, neighbours)
        try:
            if self.rate_limiter is not None:
                await self.rate_limiter.wait_acquire(f"merge:{payload['itemType']}")
            body = await asyncio.wait_for(
                self.service.evaluate(payload), timeout=self.config.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"{MERGE} evaluation timed out for '{candidate.name}'")
            return fallback_decision("Merge evaluation timed out - defaulting to keep distinct")
        except GatewayError as e:
            logger.warning(f"{MERGE} evaluation failed for '{candidate.name}': {e}")
            return fallback_decision(f"Merge evaluation failed ({e}) - defaulting to keep distinct")
        except Exception as e:
            logger.warning(
                f"{MERGE} evaluation raised {type(e).__name__} for '{candidate.name}': {e}",
                exc_info=True,
            )
            return fallback_decision(
                f"Merge evaluation failed ({type(e).__name__}: {e}) - defaulting to keep distinct"
            )

        try:
            data = parse_json_object(body)
        except GatewayError as e:
            logger.warning(f"{MERGE} unparseable decision for '{candidate.name}': {e}")
            return fallback_decision("Unable to parse merge decision - defaulting to keep distinct")

        return decision_from_payload(data, neighbours[0])

    async def decide(
        self,
        candidate: MergeCandidate,
        neighbours: Sequence[KnowledgeItem],
        project_id: Optional[str] = None,
    ) -> MergeDecision:
        if not neighbours:
            decision = MergeDecision(
                action=MergeAction.KEEP_DISTINCT,
                reason="No existing item to compare",
                confidence=NO_NEIGHBOUR_CONFIDENCE,
            )
        else:
            decision = await self._evaluate(candidate, neighbours)

        self.audit_log.record(candidate, decision, project_id=project_id)
        logger.info(
            f"{MERGE} {candidate.category.value} '{candidate.name}' -> {decision.action.value} "
            f"(confidence={decision.confidence:.2f}{', fallback' if decision.fallback else ''})"
        )
        return decision

    async def decide_staged(self, candidate: MergeCandidate, staged: StagedKnowledge) -> MergeDecision:
        """Select neighbours from staged knowledge, then decide."""
        neighbours: List[KnowledgeItem] = self.selector.select(
            candidate, staged.items(candidate.category)
        )
        return await self.decide(candidate, neighbours, project_id=staged.project_id)


__all__ = [
    "DEFAULT_CONFIDENCE",
    "FALLBACK_CONFIDENCE",
    "MergeEvaluationService",
    "HttpMergeEvaluationService",
    "MergeArbiter",
    "decision_from_payload",
    "fallback_decision",
]
