# lorekeep/cli/__init__.py
"""Command line interface (Typer + Rich)."""
