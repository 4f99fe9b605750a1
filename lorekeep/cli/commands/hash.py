# lorekeep/cli/commands/hash.py
"""
Print content fingerprints.

Usage:
    lorekeep hash chapter1.md chapter2.md
    lorekeep hash chapter1.md --paragraphs
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List

import typer

from lorekeep.cli.ui import ui
from lorekeep.ingest.hashing import fingerprint, paragraph_fingerprints


def command(files: List[Path], paragraphs: bool = False, as_json: bool = False) -> None:
    result = {}
    for path in files:
        if not path.is_file():
            ui.error(f"Not a file: {path}")
            raise typer.Exit(1)
        text = path.read_text(encoding="utf-8")
        result[str(path)] = paragraph_fingerprints(text) if paragraphs else fingerprint(text)

    if as_json:
        ui.json(json.dumps(result))
        return

    if paragraphs:
        rows = [(name, i, h) for name, hashes in result.items() for i, h in enumerate(hashes)]
        ui.table("Paragraph fingerprints", ["file", "paragraph", "sha256"], rows)
    else:
        ui.table("Fingerprints", ["file", "sha256"], list(result.items()))
