# lorekeep/__init__.py
"""
Lorekeep - incremental story-knowledge pipeline and change reconciliation.

Keeps AI-extracted story knowledge (characters, relationships, plot
threads, timeline events, world building, themes) consistent with an
evolving set of documents, and reconciles author-original and enhanced
versions of a document at the character level.

Subpackages:
    ingest      Fingerprints, fingerprint store, staleness detection
    extraction  Extraction gateway contract and response parsing
    knowledge   Knowledge items, merge arbitration, audit trail
    jobs        Processing job state machine, status, timeout supervision
    changes     Change tracking and selective revert
    api         FastAPI surface
    cli         Typer command line
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
