# lorekeep/jobs/machine.py
"""
JobStateMachine - drives one ProcessingJob through its stages.

Stage plan:
    pending    -> thinking:   select documents, capture their fingerprints,
                              build chunks (no service call)
    thinking   -> analyzing:  extraction_type=characters
    analyzing  -> extracting: extraction_type=comprehensive (relationships
                              for fact_extraction) with existing knowledge
    extracting -> done:       arbitrate every fact, then commit knowledge
                              and fingerprints as one unit

The job is persisted after every transition. Gateway failures (any
exception raised by the extraction call counts as one), commit
failures and an unreadable fingerprint store move the job to failed with
error_details; they never propagate out of advance(). Nothing retries
automatically: the caller starts a new job.

Conflict policy: a second start() for a project with an active job is
rejected with JobAlreadyActive.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from lorekeep.core.config import JobsConfig
from lorekeep.core.exceptions import (
    CommitError,
    GatewayError,
    GatewayUnavailable,
    InvalidTransition,
    JobAlreadyActive,
    StaleFingerprintStoreUnavailable,
)
from lorekeep.extraction.gateway import ExtractionGateway
from lorekeep.extraction.models import (
    ExtractionChunk,
    ExtractionRequest,
    ExtractionResponse,
    ExtractionType,
)
from lorekeep.ingest.chunking import chunk_documents
from lorekeep.ingest.documents import DocumentSource
from lorekeep.ingest.hashing import fingerprint, is_analyzable
from lorekeep.ingest.staleness import StalenessDetector
from lorekeep.ingest.state import FingerprintRecord, FingerprintStore
from lorekeep.knowledge.arbiter import MergeArbiter
from lorekeep.knowledge.models import MergeAction, MergeCandidate
from lorekeep.knowledge.store import KnowledgeStore, KnowledgeWriter, StagedKnowledge
from lorekeep.logging.tags import JOBS

from .commit import CommitUnit
from .events import StatusBus, StatusEvent
from .models import (
    PROGRESS,
    JobState,
    JobType,
    ProcessingJob,
    can_transition,
    utcnow,
)
from .store import JobStore, active_job, latest_job

logger = logging.getLogger(__name__)

_RECOVERABLE = (GatewayError, CommitError, StaleFingerprintStoreUnavailable)


def collect_candidates(
    characters: ExtractionResponse, knowledge: ExtractionResponse
) -> List[MergeCandidate]:
    """
    Candidates from both extraction stages.

    Characters from the first stage are only added when the second stage
    did not return a character of the same name.
    """
    candidates: List[MergeCandidate] = []
    seen_characters = set()
    for category, facts in knowledge.facts_by_category().items():
        for fact in facts:
            if not fact.name:
                continue
            candidates.append(MergeCandidate.from_fact(category, fact))
            if category == "character":
                seen_characters.add(fact.name.strip().lower())

    for fact in characters.characters:
        key = fact.name.strip().lower()
        if fact.name and key not in seen_characters:
            candidates.append(MergeCandidate.from_fact("character", fact))
            seen_characters.add(key)
    return candidates


def error_details_for(exc: BaseException, stage: JobState) -> Dict[str, Any]:
    return {
        "kind": type(exc).__name__,
        "message": str(exc),
        "stage": stage.value,
        "details": dict(getattr(exc, "details", {}) or {}),
    }


class JobStateMachine:
    """
    Usage:
        machine = JobStateMachine(jobs, fingerprints, knowledge, documents, gateway, arbiter)
        job_id = machine.start("project-1", JobType.INCREMENTAL)
        job = await machine.run(job_id)
    """

    def __init__(
        self,
        job_store: JobStore,
        fingerprint_store: FingerprintStore,
        knowledge_store: KnowledgeStore,
        documents: DocumentSource,
        gateway: ExtractionGateway,
        arbiter: MergeArbiter,
        bus: Optional[StatusBus] = None,
        config: Optional[JobsConfig] = None,
        supervisor: Optional[Any] = None,
    ) -> None:
        self.job_store = job_store
        self.knowledge_store = knowledge_store
        self.documents = documents
        self.gateway = gateway
        self.arbiter = arbiter
        self.bus = bus
        self.config = config or JobsConfig()
        self.supervisor = supervisor

        self.detector = StalenessDetector(fingerprint_store)
        self.writer = KnowledgeWriter()
        self.commit_unit = CommitUnit(knowledge_store, fingerprint_store)
        self._tasks: Dict[str, "asyncio.Task[ProcessingJob]"] = {}

        self._handlers: Dict[JobState, Callable[[ProcessingJob], Awaitable[ProcessingJob]]] = {
            JobState.PENDING: self._select_documents,
            JobState.THINKING: self._extract_characters,
            JobState.ANALYZING: self._extract_knowledge,
            JobState.EXTRACTING: self._merge_and_commit,
        }

    # =========================================================================
    # Public API
    # =========================================================================

    def start(
        self,
        project_id: str,
        job_type: JobType = JobType.INCREMENTAL,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Create a pending job.

        Raises:
            JobAlreadyActive: If the project already has a non-terminal job
        """
        current = active_job(self.job_store, project_id)
        if current is not None:
            logger.info(f"{JOBS} project={project_id} rejected: job {current.id} is {current.state.value}")
            raise JobAlreadyActive(project_id, current.id)

        job = ProcessingJob(
            project_id=project_id,
            job_type=JobType(job_type),
            processing_options=dict(options or {}),
        )
        self.job_store.save(job)
        self._publish(job)
        logger.info(f"{JOBS} job {job.id} created for project={project_id} type={job.job_type.value}")
        return job.id

    async def advance(self, job_id: str) -> ProcessingJob:
        """
        Move the job one stage forward.

        Raises:
            JobNotFound: Unknown job id
            InvalidTransition: The job is already terminal
        """
        job = self.job_store.get(job_id)
        if job.is_terminal:
            raise InvalidTransition(job.id, job.state.value, "next stage")

        stage = job.state
        try:
            return await self._handlers[stage](job)
        except _RECOVERABLE as e:
            return self._fail_if_still(job_id, stage, e)
        except Exception as e:
            self._fail_if_still(job_id, stage, e)
            raise

    async def run(self, job_id: str) -> ProcessingJob:
        """Advance until the job is terminal."""
        job = self.job_store.get(job_id)
        while job.is_active:
            job = await self.advance(job_id)
        return job

    def submit(
        self,
        project_id: str,
        job_type: JobType = JobType.INCREMENTAL,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        """start() then run() as a background task. Requires a running loop."""
        job_id = self.start(project_id, job_type, options)
        task = asyncio.get_running_loop().create_task(self._run_supervised(job_id))
        self._tasks[job_id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(job_id, None))
        return job_id

    async def wait(self, job_id: str) -> ProcessingJob:
        """Wait for a submitted job; returns the stored job."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self.job_store.get(job_id)

    def status(self, project_id: str) -> Dict[str, Any]:
        """Most recent job plus isProcessing / hasErrors / lastProcessedAt."""
        jobs = self.job_store.list(project_id)
        latest = jobs[-1] if jobs else None
        last_done = next((j for j in reversed(jobs) if j.state == JobState.DONE), None)
        return {
            "job": latest.model_dump(mode="json") if latest else None,
            "isProcessing": bool(latest and latest.is_active),
            "hasErrors": bool(latest and latest.state == JobState.FAILED),
            "lastProcessedAt": (
                last_done.completed_at.isoformat() if last_done and last_done.completed_at else None
            ),
        }

    def latest(self, project_id: str) -> Optional[ProcessingJob]:
        return latest_job(self.job_store, project_id)

    # =========================================================================
    # Transitions
    # =========================================================================

    def _transition(self, job: ProcessingJob, to_state: JobState, **changes: Any) -> ProcessingJob:
        if not can_transition(job.state, to_state):
            raise InvalidTransition(job.id, job.state.value, to_state.value)

        now = utcnow()
        from_state = job.state
        for key, value in changes.items():
            setattr(job, key, value)
        job.state = to_state
        job.updated_at = now

        if to_state in PROGRESS:
            job.progress_percentage, job.completed_steps, job.current_step = PROGRESS[to_state]
        if to_state == JobState.THINKING:
            job.started_at = now
        if job.is_terminal:
            job.completed_at = now

        self.job_store.save(job)
        self._publish(job)
        logger.info(f"{JOBS} job {job.id} {from_state.value} -> {to_state.value}")
        return job

    def _fail_if_still(self, job_id: str, stage: JobState, exc: BaseException) -> ProcessingJob:
        job = self.job_store.get(job_id)
        if job.state != stage:
            return job
        logger.warning(f"{JOBS} job {job_id} failed during {stage.value}: {exc}")
        return self._transition(
            job,
            JobState.FAILED,
            error_details=error_details_for(exc, stage),
            error_message=str(exc),
            current_step="Failed",
        )

    def _reload_if_still(self, job_id: str, stage: JobState) -> Optional[ProcessingJob]:
        """The stored job if it is still in stage; None if something else moved it."""
        job = self.job_store.get(job_id)
        if job.state != stage:
            logger.info(f"{JOBS} job {job_id} left {stage.value} while awaiting ({job.state.value})")
            return None
        return job

    def _publish(self, job: ProcessingJob) -> None:
        if self.bus is not None:
            self.bus.publish(job.project_id, StatusEvent.from_job(job))

    async def _run_supervised(self, job_id: str) -> ProcessingJob:
        if self.supervisor is not None:
            self.supervisor.watch_job(job_id)
        try:
            return await self.run(job_id)
        except Exception:
            logger.exception(f"{JOBS} job {job_id} crashed")
            return self.job_store.get(job_id)
        finally:
            if self.supervisor is not None:
                self.supervisor.cancel_watch(job_id)

    # =========================================================================
    # Stages
    # =========================================================================

    async def _select_documents(self, job: ProcessingJob) -> ProcessingJob:
        documents = [d for d in self.documents.documents(job.project_id) if is_analyzable(d.text)]

        wanted = job.processing_options.get("document_ids")
        if wanted:
            wanted_ids = set(wanted)
            documents = [d for d in documents if d.id in wanted_ids]

        if job.job_type != JobType.FULL_PROJECT:
            report = self.detector.detect(job.project_id, documents)
            if not report.is_known:
                raise StaleFingerprintStoreUnavailable(report.error or "Staleness unknown")
            stale = set(report.document_ids)
            documents = [d for d in documents if d.id in stale]

        chunks = chunk_documents(documents, self.config.max_chunk_chars)
        logger.info(
            f"{JOBS} job {job.id} selected {len(documents)} documents, {len(chunks)} chunks"
        )
        return self._transition(
            job,
            JobState.THINKING,
            document_ids=[d.id for d in documents],
            input_fingerprints={d.id: fingerprint(d.text) for d in documents},
            stage_results={"chunks": [c.model_dump() for c in chunks]},
        )

    async def _extract(
        self,
        job: ProcessingJob,
        extraction_type: ExtractionType,
        existing_knowledge: Optional[Dict[str, Any]] = None,
    ) -> ExtractionResponse:
        chunks = [ExtractionChunk.model_validate(c) for c in job.stage_results.get("chunks", [])]
        if not chunks:
            return ExtractionResponse()
        request = ExtractionRequest(
            chunks=chunks,
            project_id=job.project_id,
            extraction_type=extraction_type,
            existing_knowledge=existing_knowledge,
        )
        try:
            return await self.gateway.extract(request)
        except GatewayError:
            raise
        except Exception as e:
            # client-library and socket errors count as the service being unavailable
            raise GatewayUnavailable(
                f"Extraction call failed: {e}", {"cause": type(e).__name__}
            ) from e

    async def _extract_characters(self, job: ProcessingJob) -> ProcessingJob:
        response = await self._extract(job, ExtractionType.CHARACTERS)

        current = self._reload_if_still(job.id, JobState.THINKING)
        if current is None:
            return self.job_store.get(job.id)
        results = dict(current.stage_results)
        results["characters"] = response.model_dump(mode="json", by_alias=True)
        return self._transition(current, JobState.ANALYZING, stage_results=results)

    async def _extract_knowledge(self, job: ProcessingJob) -> ProcessingJob:
        characters = ExtractionResponse.model_validate(job.stage_results.get("characters", {}))
        existing = StagedKnowledge.from_store(self.knowledge_store, job.project_id).existing_knowledge()
        existing["extracted_characters"] = [
            f.model_dump(mode="json") for f in characters.characters
        ]

        extraction_type = (
            ExtractionType.RELATIONSHIPS
            if job.job_type == JobType.FACT_EXTRACTION
            else ExtractionType.COMPREHENSIVE
        )
        response = await self._extract(job, extraction_type, existing)

        current = self._reload_if_still(job.id, JobState.ANALYZING)
        if current is None:
            return self.job_store.get(job.id)
        results = dict(current.stage_results)
        results["knowledge"] = response.model_dump(mode="json", by_alias=True)
        return self._transition(current, JobState.EXTRACTING, stage_results=results)

    async def _merge_and_commit(self, job: ProcessingJob) -> ProcessingJob:
        characters = ExtractionResponse.model_validate(job.stage_results.get("characters", {}))
        knowledge = ExtractionResponse.model_validate(job.stage_results.get("knowledge", {}))
        candidates = collect_candidates(characters, knowledge)

        staged = StagedKnowledge.from_store(self.knowledge_store, job.project_id)
        counts = {a: 0 for a in MergeAction}
        for candidate in candidates:
            decision = await self.arbiter.decide_staged(candidate, staged)
            self.writer.apply(staged, candidate, decision)
            counts[decision.action] += 1

        current = self._reload_if_still(job.id, JobState.EXTRACTING)
        if current is None:
            return self.job_store.get(job.id)

        processed_at = utcnow()
        records = [
            FingerprintRecord(
                document_id=doc_id,
                project_id=current.project_id,
                hash=doc_hash,
                processed_at=processed_at,
            )
            for doc_id, doc_hash in current.input_fingerprints.items()
        ]
        self.commit_unit.commit(staged.changed, records)

        summary = {
            "documentsProcessed": len(current.document_ids),
            "factsExtracted": len(candidates),
            "merged": counts[MergeAction.MERGE],
            "discarded": counts[MergeAction.DISCARD],
            "keptDistinct": counts[MergeAction.KEEP_DISTINCT],
            "itemsWritten": len(staged.changed),
            "conflicts": len(knowledge.conflicts),
            "processingStats": knowledge.processing_stats.model_dump(by_alias=True),
        }
        return self._transition(current, JobState.DONE, results_summary=summary)


__all__ = ["JobStateMachine", "collect_candidates", "error_details_for"]
