# lorekeep/cli/commands/revert.py
"""
Revert selected enhancement edits.

Usage:
    lorekeep revert original.txt enhanced.txt --reject change-2 --reject change-5
    lorekeep revert original.txt enhanced.txt --reject-all -o final.txt

Change ids are the ones printed by `lorekeep diff` for the same pair.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

import typer

from lorekeep.changes.applicator import ChangeApplicator
from lorekeep.changes.models import UserDecision
from lorekeep.changes.tracker import ChangeTracker
from lorekeep.cli.ui import ui


def command(
    original: Path,
    enhanced: Path,
    reject: Optional[List[str]] = None,
    reject_all: bool = False,
    output: Optional[Path] = None,
) -> None:
    enhanced_text = enhanced.read_text(encoding="utf-8")
    changes = ChangeTracker().track(original.read_text(encoding="utf-8"), enhanced_text)

    if reject_all:
        changes.decide_all(UserDecision.REJECTED)
    else:
        try:
            changes.decide_many(reject or [], UserDecision.REJECTED)
        except KeyError as e:
            ui.error(str(e).strip("'\""))
            raise typer.Exit(1)

    result = ChangeApplicator().apply(enhanced_text, changes.records)

    if output is not None:
        output.write_text(result.text, encoding="utf-8")
        ui.success(f"Reverted {len(result.reverted)} change(s) -> {output}")
    else:
        sys.stdout.write(result.text)
        sys.stdout.flush()
