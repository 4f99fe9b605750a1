# lorekeep/jobs/store.py
"""
ProcessingJob persistence.

Stores hand out copies: a caller only sees another writer's change after
reading the job again. Saving never touches any field of the job.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

from pydantic import TypeAdapter

from lorekeep.core.exceptions import JobNotFound
from lorekeep.core.paths import LorePaths
from lorekeep.logging.tags import STORAGE

from .models import ProcessingJob

logger = logging.getLogger(__name__)

_jobs_adapter = TypeAdapter(List[ProcessingJob])


@runtime_checkable
class JobStore(Protocol):
    def get(self, job_id: str) -> ProcessingJob:
        """Raises JobNotFound."""
        ...

    def save(self, job: ProcessingJob) -> None:
        ...

    def list(self, project_id: Optional[str] = None) -> List[ProcessingJob]:
        """Jobs oldest first."""
        ...


class InMemoryJobStore:
    def __init__(self) -> None:
        self._jobs: Dict[str, ProcessingJob] = {}

    def get(self, job_id: str) -> ProcessingJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job.model_copy(deep=True)

    def save(self, job: ProcessingJob) -> None:
        self._jobs[job.id] = job.model_copy(deep=True)

    def list(self, project_id: Optional[str] = None) -> List[ProcessingJob]:
        jobs = [
            j.model_copy(deep=True)
            for j in self._jobs.values()
            if project_id is None or j.project_id == project_id
        ]
        jobs.sort(key=lambda j: j.created_at)
        return jobs


class JsonJobStore(InMemoryJobStore):
    """Jobs persisted to {workspace}/jobs.json, rewritten on every save."""

    def __init__(self, path: Optional[Path] = None) -> None:
        super().__init__()
        self._path = Path(path) if path is not None else LorePaths.jobs()
        if self._path.exists():
            with self._path.open("r", encoding="utf-8") as f:
                for job in _jobs_adapter.validate_python(json.load(f)):
                    self._jobs[job.id] = job
            logger.debug(f"{STORAGE} Loaded {len(self._jobs)} jobs from {self._path}")

    @property
    def path(self) -> Path:
        return self._path

    def save(self, job: ProcessingJob) -> None:
        super().save(job)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as f:
                json.dump(
                    _jobs_adapter.dump_python(list(self._jobs.values()), mode="json"),
                    f,
                    indent=2,
                )
            temp_path.replace(self._path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink()
            raise


def latest_job(store: JobStore, project_id: str) -> Optional[ProcessingJob]:
    jobs = store.list(project_id)
    return jobs[-1] if jobs else None


def active_job(store: JobStore, project_id: str) -> Optional[ProcessingJob]:
    for job in reversed(store.list(project_id)):
        if job.is_active:
            return job
    return None


__all__ = ["JobStore", "InMemoryJobStore", "JsonJobStore", "latest_job", "active_job"]
