# lorekeep/cli/commands/sweep.py
"""
Run one timeout sweep over the workspace job store.

Usage:
    lorekeep sweep
    lorekeep sweep --timeout-minutes 5
"""

from __future__ import annotations

from typing import Optional

from lorekeep.cli.ui import ui
from lorekeep.core.config import LorekeepConfig
from lorekeep.core.paths import LorePaths
from lorekeep.jobs.store import JsonJobStore
from lorekeep.jobs.supervisor import TimeoutSupervisor


def command(config: LorekeepConfig, timeout_minutes: Optional[float] = None) -> None:
    store = JsonJobStore(LorePaths.jobs())
    supervisor = TimeoutSupervisor(
        store,
        timeout_minutes=timeout_minutes or config.jobs.timeout_minutes,
    )
    result = supervisor.sweep()

    if result.failed_jobs:
        ui.table("Timed out", ["job"], [(job_id,) for job_id in result.failed_jobs])
    ui.success(f"Sweep complete: {len(result.failed_jobs)} job(s) marked failed")
