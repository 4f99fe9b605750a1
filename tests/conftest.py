# tests/conftest.py
"""
Root conftest.

Test Tiers (for CI/CD optimization):
=====================================
- tier1: Critical path tests - pure logic, no I/O (<30s)
         Run: pytest -m tier1
- tier2: Unit tests with fakes - no real services (<2min)
         Run: pytest -m "tier1 or tier2"

Every test runs against its own workspace directory so no state file
leaks between tests.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from lorekeep.core.paths import LorePaths


@pytest.fixture(autouse=True)
def workspace(tmp_path: Path):
    """Point LorePaths at a fresh workspace for each test."""
    ws = tmp_path / ".lorekeep"
    LorePaths.set_workspace(ws)
    yield ws
    LorePaths.reset()
