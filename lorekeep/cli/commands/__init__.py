# lorekeep/cli/commands/__init__.py
"""CLI command implementations, imported lazily by lorekeep.cli.cli."""
