# lorekeep/cli/commands/diff.py
"""
Show change records between an original and an enhanced text.

Usage:
    lorekeep diff original.txt enhanced.txt
    lorekeep diff original.txt enhanced.txt --json
"""

from __future__ import annotations

from pathlib import Path

from lorekeep.changes.tracker import ChangeTracker
from lorekeep.cli.ui import ui


def _clip(text: str, width: int = 40) -> str:
    text = text.replace("\n", "\\n")
    return text if len(text) <= width else text[: width - 1] + "…"


def command(original: Path, enhanced: Path, as_json: bool = False) -> None:
    changes = ChangeTracker().track(
        original.read_text(encoding="utf-8"),
        enhanced.read_text(encoding="utf-8"),
    )

    if as_json:
        ui.json(changes.model_dump_json(include={"records"}))
        return

    if not changes.records:
        ui.success("No changes")
        return

    ui.table(
        f"{len(changes.records)} change(s)",
        ["id", "type", "original", "enhanced", "orig span", "enh span", "conf"],
        [
            (
                r.id,
                r.change_type.value,
                _clip(r.original_text_snippet),
                _clip(r.enhanced_text_snippet),
                f"{r.original_position_start}:{r.original_position_end}",
                f"{r.enhanced_position_start}:{r.enhanced_position_end}",
                f"{r.confidence_score:.2f}",
            )
            for r in changes.records
        ],
    )
