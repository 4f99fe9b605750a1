# lorekeep/changes/applicator.py
"""
ChangeApplicator - revert rejected edits on top of the enhanced text.

Algorithm:
1. Keep only records marked rejected; accepted and pending edits are
   already in the enhanced text.
2. Sort them by enhanced_position_start, descending.
3. Check every span against the base text and against its neighbour.
4. Replace each enhanced span with its original snippet, last span
   first, so no replacement moves an offset that is still to be used.

Positions are frozen against the enhanced text the records were computed
from. Applying to any other buffer, including the output of a previous
run, is not supported: span checks fail with InvalidPositionRange
instead of corrupting text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from lorekeep.core.exceptions import InvalidPositionRange
from lorekeep.logging.tags import APPLY

from .models import ChangeRecord, UserDecision

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    text: str
    reverted: List[str] = field(default_factory=list)
    kept: int = 0


def reversal_plan(base_text: str, records: Iterable[ChangeRecord]) -> List[ChangeRecord]:
    """
    Rejected records in application order (descending enhanced start).

    Raises:
        InvalidPositionRange: A span does not match base_text, or two spans overlap
    """
    plan = sorted(
        (r for r in records if r.user_decision == UserDecision.REJECTED),
        key=lambda r: r.enhanced_position_start,
        reverse=True,
    )

    boundary = len(base_text)
    for record in plan:
        start, end = record.enhanced_position_start, record.enhanced_position_end
        if end > boundary:
            raise InvalidPositionRange(
                f"Change {record.id}: enhanced span [{start}:{end}] overlaps a later change "
                f"or runs past the text ({len(base_text)} chars)"
            )
        if base_text[start:end] != record.enhanced_text_snippet:
            raise InvalidPositionRange(
                f"Change {record.id}: base text at [{start}:{end}] does not match the "
                f"enhanced snippet; records only apply to the text they were computed from"
            )
        boundary = start
    return plan


class ChangeApplicator:
    """
    Usage:
        result = ChangeApplicator().apply(enhanced_text, records)
        result.text
    """

    def apply(self, base_text: str, records: Iterable[ChangeRecord]) -> ApplyResult:
        records = list(records)
        plan = reversal_plan(base_text, records)

        text = base_text
        for record in plan:
            text = (
                text[: record.enhanced_position_start]
                + record.original_text_snippet
                + text[record.enhanced_position_end :]
            )

        logger.info(f"{APPLY} reverted {len(plan)} of {len(records)} changes")
        return ApplyResult(
            text=text,
            reverted=[r.id for r in plan],
            kept=len(records) - len(plan),
        )

    def apply_text(self, base_text: str, records: Iterable[ChangeRecord]) -> str:
        return self.apply(base_text, records).text


__all__ = ["ApplyResult", "ChangeApplicator", "reversal_plan"]
