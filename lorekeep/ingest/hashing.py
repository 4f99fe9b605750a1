# lorekeep/ingest/hashing.py
"""
Content fingerprints for incremental analysis.

A fingerprint is the SHA-256 hex digest of a document's trimmed text.
It is the single source of truth for "has this document changed since it
was last analysed".

Design:
- Only leading/trailing whitespace is ignored; any interior change,
  including whitespace, produces a different fingerprint
- Empty-after-trim text still hashes; callers exclude empty documents
- Paragraph fingerprints let callers see which part of a document moved
"""

from __future__ import annotations

import hashlib
import re
from typing import Iterable, List

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


def fingerprint(text: str) -> str:
    """
    Compute the fingerprint of a document's text.

    Args:
        text: Raw document text (markup included)

    Returns:
        64-character SHA-256 hex digest of the trimmed text

    Examples:
        >>> fingerprint("  hello ") == fingerprint("hello")
        True
    """
    return hashlib.sha256(text.strip().encode("utf-8")).hexdigest()


def fingerprint_many(texts: Iterable[str]) -> List[str]:
    """Fingerprint several texts, preserving order."""
    return [fingerprint(t) for t in texts]


def is_analyzable(text: str) -> bool:
    """A document is eligible for analysis only when its trimmed text is non-empty."""
    return bool(text and text.strip())


def split_paragraphs(text: str) -> List[str]:
    """Split text on blank lines, dropping empty paragraphs."""
    return [p.strip() for p in _PARAGRAPH_SPLIT.split(text) if p.strip()]


def paragraph_fingerprints(text: str) -> List[str]:
    """Fingerprint each non-empty paragraph of text."""
    return [fingerprint(p) for p in split_paragraphs(text)]


def changed_paragraphs(old_text: str, new_text: str) -> List[int]:
    """
    Indices of paragraphs in new_text whose content does not appear in old_text.

    Moved paragraphs are not reported; edited or added ones are.
    """
    known = set(paragraph_fingerprints(old_text))
    return [i for i, h in enumerate(paragraph_fingerprints(new_text)) if h not in known]


__all__ = [
    "fingerprint",
    "fingerprint_many",
    "is_analyzable",
    "split_paragraphs",
    "paragraph_fingerprints",
    "changed_paragraphs",
]
