# lorekeep/changes/tracker.py
"""
ChangeTracker - character-level change records between two versions.

Steps:
1. Character diff (difflib.SequenceMatcher, autojunk off).
2. Word snapping: an edit glued to a word on either side is widened to
   the whole word in both texts ("slow." -> "slowly, without hurry."
   rather than an insertion of "ly, without hurry").
3. Overlapping or touching regions coalesce into one record.
4. Each region is classified and scored.

Every record satisfies original[start:end] == original_snippet and
enhanced[start:end] == enhanced_snippet for the pair it came from.
"""

from __future__ import annotations

import logging
import re
from difflib import SequenceMatcher
from typing import List, Optional, Tuple

from lorekeep.logging.tags import DIFF

from .models import ChangeRecord, ChangeSet, ChangeType, SemanticImpact

logger = logging.getLogger(__name__)

Region = Tuple[int, int, int, int]  # (orig_start, orig_end, enh_start, enh_end)

_PUNCTUATION = re.compile(r"[^\w\s]")
_QUOTES = ('"', "“", "”", "«", "»")

STYLE_MIN_CHARS = 50


def diff_regions(original: str, enhanced: str) -> List[Region]:
    """Raw non-equal opcode regions."""
    matcher = SequenceMatcher(None, original, enhanced, autojunk=False)
    return [(i1, i2, j1, j2) for tag, i1, i2, j1, j2 in matcher.get_opcodes() if tag != "equal"]


def _glued(text: str, at_start: bool) -> bool:
    if not text:
        return False
    ch = text[0] if at_start else text[-1]
    return not ch.isspace()


def snap_to_words(
    original: str,
    enhanced: str,
    region: Region,
    lower: Tuple[int, int] = (0, 0),
    upper: Optional[Tuple[int, int]] = None,
) -> Region:
    """
    Widen a region over shared word characters it cuts into.

    lower and upper bound the widening to the equal run around the region,
    so it never walks across a neighbouring edit.
    """
    i1, i2, j1, j2 = region
    lo_i, lo_j = lower
    hi_i, hi_j = upper if upper is not None else (len(original), len(enhanced))
    o_text, e_text = original[i1:i2], enhanced[j1:j2]

    if _glued(o_text, True) or _glued(e_text, True):
        while (
            i1 > lo_i
            and j1 > lo_j
            and original[i1 - 1] == enhanced[j1 - 1]
            and not original[i1 - 1].isspace()
        ):
            i1 -= 1
            j1 -= 1

    if _glued(o_text, False) or _glued(e_text, False):
        while (
            i2 < hi_i
            and j2 < hi_j
            and original[i2] == enhanced[j2]
            and not original[i2].isspace()
        ):
            i2 += 1
            j2 += 1

    return i1, i2, j1, j2


def coalesce(regions: List[Region]) -> List[Region]:
    """Merge regions that overlap or touch in either coordinate space."""
    merged: List[Region] = []
    for region in regions:
        if merged:
            a1, a2, b1, b2 = merged[-1]
            i1, i2, j1, j2 = region
            if i1 <= a2 or j1 <= b2:
                merged[-1] = (a1, max(a2, i2), b1, max(b2, j2))
                continue
        merged.append(region)
    return merged


def classify_change(original_snippet: str, enhanced_snippet: str) -> ChangeType:
    if not original_snippet:
        return ChangeType.INSERTION
    if not enhanced_snippet:
        return ChangeType.DELETION
    if original_snippet.lower() == enhanced_snippet.lower():
        return ChangeType.CAPITALIZATION
    if "".join(original_snippet.split()) == "".join(enhanced_snippet.split()):
        return ChangeType.WHITESPACE
    if _PUNCTUATION.sub("", original_snippet) == _PUNCTUATION.sub("", enhanced_snippet):
        return ChangeType.PUNCTUATION
    if any(q in original_snippet or q in enhanced_snippet for q in _QUOTES):
        return ChangeType.DIALOGUE
    if len(original_snippet) > STYLE_MIN_CHARS and len(enhanced_snippet) > STYLE_MIN_CHARS:
        return ChangeType.STYLE
    return ChangeType.REPLACEMENT


def change_confidence(change_type: ChangeType, original_snippet: str, enhanced_snippet: str) -> float:
    if change_type in (ChangeType.INSERTION, ChangeType.DELETION):
        return 0.9
    if len(original_snippet) == 1 and len(enhanced_snippet) == 1:
        return 0.95
    total = len(original_snippet) + len(enhanced_snippet)
    if total > 100:
        return 0.6
    if total > 50:
        return 0.75
    return 0.85


def semantic_impact(original_snippet: str, enhanced_snippet: str) -> SemanticImpact:
    total = len(original_snippet) + len(enhanced_snippet)
    if total <= 3:
        return SemanticImpact.LOW
    if total > 50:
        return SemanticImpact.HIGH
    return SemanticImpact.MEDIUM


class ChangeTracker:
    """
    Usage:
        changes = ChangeTracker().track(original, enhanced)
        for record in changes.records:
            ...
    """

    def __init__(self, id_prefix: str = "change") -> None:
        self.id_prefix = id_prefix

    def regions(self, original: str, enhanced: str) -> List[Region]:
        raw = diff_regions(original, enhanced)
        snapped: List[Region] = []
        for n, region in enumerate(raw):
            lower = (snapped[-1][1], snapped[-1][3]) if snapped else (0, 0)
            upper = (raw[n + 1][0], raw[n + 1][2]) if n + 1 < len(raw) else None
            snapped.append(snap_to_words(original, enhanced, region, lower, upper))
        return coalesce(snapped)

    def compute(self, original: str, enhanced: str) -> List[ChangeRecord]:
        records: List[ChangeRecord] = []
        for n, (i1, i2, j1, j2) in enumerate(self.regions(original, enhanced), start=1):
            o_snip, e_snip = original[i1:i2], enhanced[j1:j2]
            change_type = classify_change(o_snip, e_snip)
            records.append(
                ChangeRecord.create(
                    original,
                    enhanced,
                    id=f"{self.id_prefix}-{n}",
                    change_type=change_type,
                    original_text_snippet=o_snip,
                    enhanced_text_snippet=e_snip,
                    original_position_start=i1,
                    original_position_end=i2,
                    enhanced_position_start=j1,
                    enhanced_position_end=j2,
                    confidence_score=change_confidence(change_type, o_snip, e_snip),
                    semantic_impact=semantic_impact(o_snip, e_snip),
                )
            )
        logger.info(f"{DIFF} {len(records)} changes ({len(original)} -> {len(enhanced)} chars)")
        return records

    def track(self, original: str, enhanced: str) -> ChangeSet:
        return ChangeSet(original=original, enhanced=enhanced, records=self.compute(original, enhanced))


__all__ = [
    "ChangeTracker",
    "diff_regions",
    "snap_to_words",
    "coalesce",
    "classify_change",
    "change_confidence",
    "semantic_impact",
]
