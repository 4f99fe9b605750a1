# lorekeep/prompts/merge.py
"""
Prompts for merge evaluation.

One base prompt plus type-specific guidance for relationships, timeline
events and plot threads.

Version: v1
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

MERGE_BASE_PROMPT = """You are a story knowledge curator deciding whether a newly extracted {item_type} duplicates existing knowledge.

CRITICAL RULES:
1. PRESERVE valuable information - never lose important details
2. ENHANCE existing data with new insights when beneficial
3. DISCARD only truly redundant information with no added value
4. When in doubt, choose keep_distinct rather than merge

NEW ITEM:
{new_item}

EXISTING ITEMS (closest first):
{existing_items}

Respond with JSON in this exact format:
{{"action": "merge|discard|keep_distinct", "reason": "Clear explanation", "confidence": 0.0-1.0, "mergedData": {{"description": "...", "evidence": "..."}}}}

Only include mergedData when action is "merge". A merge always targets the first existing item.
"""

RELATIONSHIP_GUIDANCE = """
RELATIONSHIP-SPECIFIC GUIDANCE:
- MERGE if: Same characters with compatible relationship types (e.g. "friend" + "ally")
- MERGE if: Additional evidence or interactions enhance understanding
- DISCARD if: Exact duplicate with no new information
- KEEP_DISTINCT if: Different relationship dynamics or incompatible types

If merging, combine evidence and interactions."""

TIMELINE_EVENT_GUIDANCE = """
TIMELINE EVENT-SPECIFIC GUIDANCE:
- MERGE if: Same event with additional details or context
- DISCARD if: Exact duplicate with no temporal or descriptive additions
- KEEP_DISTINCT if: Different events or significantly different perspectives

If merging, write one event description combining all details."""

PLOT_THREAD_GUIDANCE = """
PLOT THREAD-SPECIFIC GUIDANCE:
- MERGE if: Same narrative thread with additional events or insights
- DISCARD if: Exact duplicate thread with no new events
- KEEP_DISTINCT if: Different threads or significantly different focus

If merging, combine key events and enhance the thread description."""

TYPE_GUIDANCE: Dict[str, str] = {
    "relationship": RELATIONSHIP_GUIDANCE,
    "timeline_event": TIMELINE_EVENT_GUIDANCE,
    "plot_thread": PLOT_THREAD_GUIDANCE,
}


def build_merge_prompt(
    item_type: str,
    new_item: Dict[str, Any],
    existing_items: List[Dict[str, Any]],
) -> str:
    """Render the merge prompt for a candidate and its neighbours."""
    prompt = MERGE_BASE_PROMPT.format(
        item_type=item_type.replace("_", " "),
        new_item=json.dumps(new_item, indent=2, default=str),
        existing_items=json.dumps(existing_items, indent=2, default=str),
    )
    return prompt + TYPE_GUIDANCE.get(item_type, "")


__all__ = [
    "MERGE_BASE_PROMPT",
    "RELATIONSHIP_GUIDANCE",
    "TIMELINE_EVENT_GUIDANCE",
    "PLOT_THREAD_GUIDANCE",
    "TYPE_GUIDANCE",
    "build_merge_prompt",
]
