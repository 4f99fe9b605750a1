# lorekeep/jobs/supervisor.py
"""
TimeoutSupervisor - nothing stays in progress forever.

Two independent paths reach the same outcome:
- Live timer: one asyncio task per watched job or enhancement; when the
  ceiling elapses and the subject is still active it is marked failed.
- Sweep: a periodic pass over the stores that fails every active job or
  enhancement whose updated_at is older than the ceiling. This catches
  work whose process died with its timers.

Both change only the state (status for enhancements). No other field is
touched, updated_at included. A store error while expiring one subject is
logged and the rest of the pass continues; the periodic loop and the
timers outlive failing passes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from lorekeep.changes.enhancement import EnhancementStatus, EnhancementStore
from lorekeep.logging.tags import SUPERVISOR

from .events import StatusBus, StatusEvent
from .models import JobState, utcnow
from .store import JobStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MINUTES = 30.0
DEFAULT_SWEEP_INTERVAL = 60.0


@dataclass
class SweepResult:
    failed_jobs: List[str] = field(default_factory=list)
    failed_enhancements: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.failed_jobs) + len(self.failed_enhancements)

    @property
    def summary(self) -> str:
        return f"jobs={len(self.failed_jobs)}, enhancements={len(self.failed_enhancements)}"


class TimeoutSupervisor:
    """
    Usage:
        supervisor = TimeoutSupervisor(job_store, enhancement_store, timeout_minutes=30)
        supervisor.sweep()                      # one pass
        await supervisor.run_forever(stop)      # periodic sweeps until stop is set
    """

    def __init__(
        self,
        job_store: JobStore,
        enhancement_store: Optional[EnhancementStore] = None,
        timeout_minutes: float = DEFAULT_TIMEOUT_MINUTES,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        bus: Optional[StatusBus] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.job_store = job_store
        self.enhancement_store = enhancement_store
        self.timeout = timedelta(minutes=timeout_minutes)
        self.sweep_interval = sweep_interval
        self.bus = bus
        self._clock = clock
        self._timers: Dict[str, "asyncio.Task[None]"] = {}

    # =========================================================================
    # Marking
    # =========================================================================

    def expire_job(self, job_id: str) -> bool:
        """Mark a job failed if it is still active. Only state changes."""
        job = self.job_store.get(job_id)
        if not job.is_active:
            return False
        previous = job.state
        job.state = JobState.FAILED
        self.job_store.save(job)
        logger.warning(f"{SUPERVISOR} job {job_id} timed out in {previous.value}")
        if self.bus is not None:
            self.bus.publish(job.project_id, StatusEvent.from_job(job))
        return True

    def expire_enhancement(self, enhancement_id: str) -> bool:
        """Mark an enhancement failed if it is still in progress. Only status changes."""
        if self.enhancement_store is None:
            return False
        record = self.enhancement_store.get(enhancement_id)
        if not record.is_active:
            return False
        record.status = EnhancementStatus.FAILED
        self.enhancement_store.save(record)
        logger.warning(f"{SUPERVISOR} enhancement {enhancement_id} timed out")
        if self.bus is not None:
            self.bus.publish(
                record.project_id,
                StatusEvent(
                    project_id=record.project_id,
                    subject_id=record.id,
                    kind="enhancement",
                    state=record.status.value,
                ),
            )
        return True

    def _expire(self, expire: Callable[[str], bool], subject_id: str) -> bool:
        try:
            return expire(subject_id)
        except Exception as e:
            logger.exception(f"{SUPERVISOR} could not expire {subject_id}: {e}")
            return False

    # =========================================================================
    # Sweep
    # =========================================================================

    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """Fail everything active whose updated_at is older than the ceiling."""
        cutoff = (now or self._clock()) - self.timeout
        result = SweepResult()

        for job in self.job_store.list():
            if job.is_active and job.updated_at < cutoff and self._expire(self.expire_job, job.id):
                result.failed_jobs.append(job.id)

        if self.enhancement_store is not None:
            for record in self.enhancement_store.list():
                if record.is_active and record.updated_at < cutoff:
                    if self._expire(self.expire_enhancement, record.id):
                        result.failed_enhancements.append(record.id)

        if result.total:
            logger.info(f"{SUPERVISOR} sweep failed {result.summary}")
        else:
            logger.debug(f"{SUPERVISOR} sweep found nothing abandoned")
        return result

    async def run_forever(self, stop: Optional[asyncio.Event] = None) -> None:
        """Sweep every sweep_interval seconds until stop is set."""
        stop = stop or asyncio.Event()
        logger.info(f"{SUPERVISOR} sweeping every {self.sweep_interval:g}s")
        while not stop.is_set():
            try:
                self.sweep()
            except Exception as e:
                logger.exception(f"{SUPERVISOR} sweep failed, retrying in {self.sweep_interval:g}s: {e}")
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.sweep_interval)
            except asyncio.TimeoutError:
                pass

    # =========================================================================
    # Live timers
    # =========================================================================

    def _watch(self, subject_id: str, expire: Callable[[str], bool]) -> "asyncio.Task[None]":
        self.cancel_watch(subject_id)

        async def _timer() -> None:
            await asyncio.sleep(self.timeout.total_seconds())
            self._expire(expire, subject_id)

        task = asyncio.get_running_loop().create_task(_timer())
        self._timers[subject_id] = task
        task.add_done_callback(lambda t: self._forget(subject_id, t))
        return task

    def _forget(self, subject_id: str, task: "asyncio.Task[None]") -> None:
        if self._timers.get(subject_id) is task:
            del self._timers[subject_id]

    def watch_job(self, job_id: str) -> "asyncio.Task[None]":
        return self._watch(job_id, self.expire_job)

    def watch_enhancement(self, enhancement_id: str) -> "asyncio.Task[None]":
        return self._watch(enhancement_id, self.expire_enhancement)

    def cancel_watch(self, subject_id: str) -> None:
        task = self._timers.pop(subject_id, None)
        if task is not None:
            task.cancel()

    @property
    def watched(self) -> List[str]:
        return list(self._timers)


__all__ = ["SweepResult", "TimeoutSupervisor", "DEFAULT_TIMEOUT_MINUTES", "DEFAULT_SWEEP_INTERVAL"]
