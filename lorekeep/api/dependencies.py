# lorekeep/api/dependencies.py
"""
Shared dependencies for API routes.

All components are built once per app from the configuration and kept on
app.state.services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from lorekeep.changes.enhancement import EnhancementService, InMemoryEnhancementStore
from lorekeep.core.config import LorekeepConfig, RateLimitConfig
from lorekeep.core.paths import LorePaths
from lorekeep.core.ratelimit import SlidingWindowRateLimiter
from lorekeep.extraction.gateway import ExtractionGateway, HttpExtractionGateway
from lorekeep.ingest.documents import StaticDocumentSource
from lorekeep.ingest.staleness import StalenessDetector
from lorekeep.ingest.state import FingerprintStateManager, FingerprintStore
from lorekeep.jobs.events import InMemoryStatusBus
from lorekeep.jobs.machine import JobStateMachine
from lorekeep.jobs.status import AnalysisStatusReporter
from lorekeep.jobs.store import JobStore, JsonJobStore
from lorekeep.jobs.supervisor import TimeoutSupervisor
from lorekeep.knowledge.arbiter import HttpMergeEvaluationService, MergeArbiter, MergeEvaluationService
from lorekeep.knowledge.audit import MergeAuditLog
from lorekeep.knowledge.store import JsonKnowledgeStore, KnowledgeStore


@dataclass
class Services:
    config: LorekeepConfig
    job_store: JobStore
    fingerprint_store: FingerprintStore
    knowledge_store: KnowledgeStore
    documents: StaticDocumentSource
    bus: InMemoryStatusBus
    supervisor: TimeoutSupervisor
    machine: JobStateMachine
    reporter: AnalysisStatusReporter
    enhancements: EnhancementService
    audit_log: MergeAuditLog


def _limiter(limits: RateLimitConfig) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(
        max_requests=limits.max_requests,
        window_seconds=limits.window_seconds,
        max_keys=limits.max_keys,
    )


def build_services(
    config: LorekeepConfig,
    job_store: Optional[JobStore] = None,
    fingerprint_store: Optional[FingerprintStore] = None,
    knowledge_store: Optional[KnowledgeStore] = None,
    gateway: Optional[ExtractionGateway] = None,
    merge_service: Optional[MergeEvaluationService] = None,
    audit_log: Optional[MergeAuditLog] = None,
) -> Services:
    """
    Wire every component. Anything not passed in is built from config and
    persisted under the workspace.
    """
    gateway_limiter = _limiter(config.rate_limit)
    merge_limiter = _limiter(config.arbiter.rate_limit)

    job_store = job_store if job_store is not None else JsonJobStore(LorePaths.jobs())
    fingerprint_store = (
        fingerprint_store if fingerprint_store is not None
        else FingerprintStateManager(LorePaths.fingerprints())
    )
    knowledge_store = (
        knowledge_store if knowledge_store is not None else JsonKnowledgeStore(LorePaths.knowledge())
    )
    gateway = gateway or HttpExtractionGateway(config.gateway, rate_limiter=gateway_limiter)
    merge_service = merge_service or HttpMergeEvaluationService(config.arbiter)
    audit_log = audit_log if audit_log is not None else MergeAuditLog(LorePaths.merge_audit())

    documents = StaticDocumentSource()
    bus = InMemoryStatusBus()
    enhancement_store = InMemoryEnhancementStore()
    supervisor = TimeoutSupervisor(
        job_store,
        enhancement_store,
        timeout_minutes=config.jobs.timeout_minutes,
        sweep_interval=config.jobs.sweep_interval_seconds,
        bus=bus,
    )
    arbiter = MergeArbiter(merge_service, audit_log, config.arbiter, rate_limiter=merge_limiter)
    machine = JobStateMachine(
        job_store,
        fingerprint_store,
        knowledge_store,
        documents,
        gateway,
        arbiter,
        bus=bus,
        config=config.jobs,
        supervisor=supervisor,
    )

    return Services(
        config=config,
        job_store=job_store,
        fingerprint_store=fingerprint_store,
        knowledge_store=knowledge_store,
        documents=documents,
        bus=bus,
        supervisor=supervisor,
        machine=machine,
        reporter=AnalysisStatusReporter(job_store, knowledge_store, StalenessDetector(fingerprint_store)),
        enhancements=EnhancementService(enhancement_store, supervisor=supervisor),
        audit_log=audit_log,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_version() -> str:
    from lorekeep import __version__

    return __version__


__all__ = ["Services", "build_services", "get_services", "get_version"]
