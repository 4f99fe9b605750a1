# lorekeep/cli/commands/stale.py
"""
Staleness report for a directory of documents.

Usage:
    lorekeep stale ./manuscript
    lorekeep stale ./manuscript --project my-novel --json

Exit codes: 0 ok, 2 staleness unknown (fingerprint store unreadable).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from lorekeep.cli.ui import ui
from lorekeep.core.paths import LorePaths
from lorekeep.ingest.documents import load_documents
from lorekeep.ingest.staleness import StalenessDetector
from lorekeep.ingest.state import FingerprintStateManager
from lorekeep.logging.logger import get_logger
from lorekeep.logging.tags import CLI

logger = get_logger(__name__)


def command(directory: Path, project: Optional[str] = None, as_json: bool = False) -> None:
    project_id = project or directory.resolve().name
    documents = load_documents(directory)
    store = FingerprintStateManager(LorePaths.fingerprints())
    report = StalenessDetector(store).detect(project_id, documents)
    logger.debug(f"{CLI} stale {directory} project={project_id}: {report.summary}")

    if as_json:
        ui.json(json.dumps(report.to_dict()))
    elif not report.is_known:
        ui.error("Staleness unknown")
        ui.warning("Fingerprint store could not be read", report.error or "")
    else:
        ui.header("Staleness", f"project {project_id}, {len(documents)} documents")
        if report.stale:
            ui.table(
                "Needs processing",
                ["document", "reason"],
                [(s.document_id, s.reason.value) for s in report.stale],
            )
        ui.success(f"{report.count} document(s) need processing")

    if not report.is_known:
        raise typer.Exit(2)
