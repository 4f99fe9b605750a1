# lorekeep/cli/cli.py
"""
Lorekeep CLI - Main application.

Commands:
    lorekeep hash      Print content fingerprints
    lorekeep stale     Staleness report for a directory
    lorekeep diff      Change records between two versions of a text
    lorekeep revert    Revert selected edits and write the result
    lorekeep sweep     Fail jobs stuck past the timeout ceiling
    lorekeep serve     Start the REST API server

NOTE: Commands use lazy loading - imports only happen when a command is invoked.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from lorekeep.cli.ui import ui
from lorekeep.core.config import ConfigError, load_config
from lorekeep.core.paths import LorePaths
from lorekeep.logging.logger import configure_logging

app = typer.Typer(
    name="lorekeep",
    help="Lorekeep - incremental story-knowledge pipeline and change reconciliation.",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main(
    ctx: typer.Context,
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Workspace directory."),
    config: Optional[Path] = typer.Option(None, "--config", help="Config file (YAML)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Global options."""
    if workspace is not None:
        LorePaths.set_workspace(workspace)
    try:
        cfg = load_config(config, allow_default=config is None)
    except ConfigError as e:
        ui.error(str(e))
        raise typer.Exit(1)
    configure_logging("DEBUG" if verbose else cfg.logging.level)
    ctx.obj = cfg


# =============================================================================
# LAZY COMMANDS
# =============================================================================


@app.command("hash")
def hash_cmd(
    files: List[Path] = typer.Argument(..., help="Files to fingerprint."),
    paragraphs: bool = typer.Option(False, "--paragraphs", "-p", help="Per-paragraph fingerprints."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Print content fingerprints."""
    from lorekeep.cli.commands import hash as mod

    mod.command(files=files, paragraphs=paragraphs, as_json=as_json)


@app.command("stale")
def stale(
    directory: Path = typer.Argument(..., help="Directory of .txt/.md documents."),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project id (default: directory name)."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Report which documents need (re)analysis."""
    from lorekeep.cli.commands import stale as mod

    mod.command(directory=directory, project=project, as_json=as_json)


@app.command("diff")
def diff(
    original: Path = typer.Argument(..., help="Original text file."),
    enhanced: Path = typer.Argument(..., help="Enhanced text file."),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show change records between two versions."""
    from lorekeep.cli.commands import diff as mod

    mod.command(original=original, enhanced=enhanced, as_json=as_json)


@app.command("revert")
def revert(
    original: Path = typer.Argument(..., help="Original text file."),
    enhanced: Path = typer.Argument(..., help="Enhanced text file."),
    reject: Optional[List[str]] = typer.Option(None, "--reject", "-r", help="Change id to revert (repeatable)."),
    reject_all: bool = typer.Option(False, "--reject-all", help="Revert every change."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write result here instead of stdout."),
) -> None:
    """Revert rejected edits and print or write the result."""
    from lorekeep.cli.commands import revert as mod

    mod.command(original=original, enhanced=enhanced, reject=reject, reject_all=reject_all, output=output)


@app.command("sweep")
def sweep(
    ctx: typer.Context,
    timeout_minutes: Optional[float] = typer.Option(None, "--timeout-minutes", "-t", help="Override the ceiling."),
) -> None:
    """Mark jobs stuck past the timeout ceiling as failed."""
    from lorekeep.cli.commands import sweep as mod

    mod.command(config=ctx.obj, timeout_minutes=timeout_minutes)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to."),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to."),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload."),
) -> None:
    """Start the REST API server."""
    from lorekeep.cli.commands import serve as mod

    mod.command(host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
