# lorekeep/cli/ui.py
"""
Shared UI helpers for CLI commands.

Usage:
    from lorekeep.cli.ui import ui

    ui.header("Staleness")
    ui.success("Done!")
    ui.table("Changes", ["id", "type"], rows)
"""

from __future__ import annotations

from typing import Any, List, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()


class UI:
    """Consistent Rich styling for every command."""

    def print(self, msg: str, style: str = "") -> None:
        """Print with optional Rich styling."""
        if style:
            console.print(f"[{style}]{msg}[/{style}]")
        else:
            console.print(msg, markup=False, highlight=False)

    def header(self, title: str, subtitle: str = "") -> None:
        """Print a fitted command header."""
        if subtitle:
            content = f"[bold]{title}[/bold]\n[dim]{subtitle}[/dim]"
        else:
            content = f"[bold]{title}[/bold]"
        console.print(Panel.fit(content, border_style="blue"))

    def section(self, title: str) -> None:
        console.print(f"\n[bold cyan]{title}[/bold cyan]")

    def success(self, msg: str) -> None:
        console.print(f"[green]✓[/green] {msg}")

    def error(self, msg: str) -> None:
        console.print(f"[red]✗[/red] {msg}")

    def warning(self, msg: str, detail: str = "") -> None:
        detail_str = f" [dim]({detail})[/dim]" if detail else ""
        console.print(f"[yellow]⚠[/yellow] {msg}{detail_str}")

    def info(self, msg: str) -> None:
        console.print(f"[dim]{msg}[/dim]")

    def table(self, title: str, columns: Sequence[str], rows: List[Sequence[Any]]) -> None:
        """Print rows as a table; cells are rendered with str()."""
        table = Table(title=title, show_lines=False)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(str(cell) for cell in row))
        console.print(table)

    def json(self, data: str) -> None:
        """Print raw JSON without Rich markup processing."""
        console.print_json(data)


ui = UI()

__all__ = ["UI", "ui", "console"]
