# lorekeep/jobs/events.py
"""
Status notifications, published per project.

StatusBus is a publish/subscribe interface with the project id as topic.
InMemoryStatusBus fans events out to asyncio queues. PollingStatusFeed is
the fallback for observers without a channel: it re-reads the latest job
at a bounded interval and yields only when something changed.

Usage:
    bus = InMemoryStatusBus()
    async with bus.subscribe("project-1") as sub:
        event = await sub.get(timeout=5)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Optional, Protocol, Set, Tuple, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from .models import ProcessingJob
from .store import JobStore, latest_job

logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL = 1.0
MAX_POLL_INTERVAL = 60.0


class StatusEvent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    project_id: str
    subject_id: str
    kind: str = "job"
    state: str
    progress_percentage: int = 0
    current_step: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_job(cls, job: ProcessingJob) -> "StatusEvent":
        return cls(
            project_id=job.project_id,
            subject_id=job.id,
            state=job.state.value,
            progress_percentage=job.progress_percentage,
            current_step=job.current_step,
        )


@runtime_checkable
class StatusBus(Protocol):
    def publish(self, topic: str, event: StatusEvent) -> None:
        ...

    def subscribe(self, topic: str) -> "StatusSubscription":
        ...


class StatusSubscription:
    """One observer's queue on a topic. Iterate it or call get()."""

    def __init__(self, bus: "InMemoryStatusBus", topic: str, maxsize: int = 0) -> None:
        self.topic = topic
        self._bus = bus
        self.queue: "asyncio.Queue[StatusEvent]" = asyncio.Queue(maxsize)

    async def get(self, timeout: Optional[float] = None) -> StatusEvent:
        if timeout is None:
            return await self.queue.get()
        return await asyncio.wait_for(self.queue.get(), timeout)

    def close(self) -> None:
        self._bus._unsubscribe(self)

    def __aiter__(self) -> "StatusSubscription":
        return self

    async def __anext__(self) -> StatusEvent:
        return await self.queue.get()

    async def __aenter__(self) -> "StatusSubscription":
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()


class InMemoryStatusBus:
    def __init__(self, maxsize: int = 100) -> None:
        self._maxsize = maxsize
        self._subscribers: Dict[str, Set[StatusSubscription]] = {}

    def subscribe(self, topic: str) -> StatusSubscription:
        sub = StatusSubscription(self, topic, self._maxsize)
        self._subscribers.setdefault(topic, set()).add(sub)
        return sub

    def _unsubscribe(self, sub: StatusSubscription) -> None:
        subs = self._subscribers.get(sub.topic)
        if subs is None:
            return
        subs.discard(sub)
        if not subs:
            del self._subscribers[sub.topic]

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    def publish(self, topic: str, event: StatusEvent) -> None:
        for sub in list(self._subscribers.get(topic, ())):
            try:
                sub.queue.put_nowait(event)
            except asyncio.QueueFull:
                # slow observer: drop its oldest event
                sub.queue.get_nowait()
                sub.queue.put_nowait(event)


def clamp_interval(seconds: float) -> float:
    return min(MAX_POLL_INTERVAL, max(MIN_POLL_INTERVAL, seconds))


class PollingStatusFeed:
    """Polling adapter yielding the same StatusEvents a bus would."""

    def __init__(self, store: JobStore, project_id: str, interval: float = 5.0) -> None:
        self.store = store
        self.project_id = project_id
        self.interval = clamp_interval(interval)
        self._last: Optional[Tuple] = None

    def poll_once(self) -> Optional[StatusEvent]:
        job = latest_job(self.store, self.project_id)
        if job is None:
            return None
        key = (job.id, job.state, job.progress_percentage, job.updated_at)
        if key == self._last:
            return None
        self._last = key
        return StatusEvent.from_job(job)

    async def __aiter__(self) -> AsyncIterator[StatusEvent]:
        while True:
            event = self.poll_once()
            if event is not None:
                yield event
            await asyncio.sleep(self.interval)


__all__ = [
    "MIN_POLL_INTERVAL",
    "MAX_POLL_INTERVAL",
    "StatusEvent",
    "StatusBus",
    "StatusSubscription",
    "InMemoryStatusBus",
    "PollingStatusFeed",
    "clamp_interval",
]
