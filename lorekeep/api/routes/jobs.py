# lorekeep/api/routes/jobs.py
"""Processing jobs, project documents, status and the timeout sweep."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from lorekeep.api.dependencies import Services, get_services
from lorekeep.api.error_handlers import handle_api_errors
from lorekeep.api.models.schemas import (
    RegisterDocumentsRequest,
    RegisterDocumentsResponse,
    StartJobRequest,
    StartJobResponse,
    SweepResponse,
)
from lorekeep.ingest.documents import Document
from lorekeep.jobs.models import estimate_processing_time
from lorekeep.logging.tags import API

logger = logging.getLogger(__name__)

router = APIRouter(tags=["jobs"])


@router.post("/projects/{project_id}/documents", response_model=RegisterDocumentsResponse)
@handle_api_errors
async def register_documents(
    project_id: str,
    request: RegisterDocumentsRequest,
    services: Services = Depends(get_services),
) -> RegisterDocumentsResponse:
    """Register or replace the current text of project documents."""
    now = datetime.now(timezone.utc)
    services.documents.put(
        project_id,
        [
            Document(id=d.id, text=d.text, last_modified=d.last_modified or now, title=d.title)
            for d in request.documents
        ],
    )
    return RegisterDocumentsResponse(project_id=project_id, registered=len(request.documents))


@router.post("/projects/{project_id}/jobs", response_model=StartJobResponse, status_code=202)
@handle_api_errors
async def start_job(
    project_id: str,
    request: StartJobRequest,
    services: Services = Depends(get_services),
) -> StartJobResponse:
    """
    Start an analysis run in the background.

    Returns 409 if the project already has an active job.
    """
    job_id = services.machine.submit(project_id, request.job_type, request.options)
    words = sum(d.word_count for d in services.documents.documents(project_id))
    logger.info(f"{API} started job {job_id} for project={project_id}")
    return StartJobResponse(
        job_id=job_id,
        state=services.job_store.get(job_id).state.value,
        estimated_seconds=estimate_processing_time(words),
    )


@router.get("/jobs/{job_id}")
@handle_api_errors
async def get_job(job_id: str, services: Services = Depends(get_services)):
    return services.job_store.get(job_id).model_dump(mode="json")


@router.get("/projects/{project_id}/jobs")
@handle_api_errors
async def list_jobs(project_id: str, services: Services = Depends(get_services)):
    return [j.model_dump(mode="json") for j in services.job_store.list(project_id)]


@router.get("/projects/{project_id}/status")
@handle_api_errors
async def project_status(project_id: str, services: Services = Depends(get_services)):
    """Analysis status surface for dashboards."""
    return services.reporter.status(project_id, services.documents.documents(project_id))


@router.get("/projects/{project_id}/staleness")
@handle_api_errors
async def project_staleness(project_id: str, services: Services = Depends(get_services)):
    report = services.machine.detector.detect(project_id, services.documents.documents(project_id))
    return report.to_dict()


@router.post("/supervisor/sweep", response_model=SweepResponse)
@handle_api_errors
async def sweep(services: Services = Depends(get_services)) -> SweepResponse:
    result = services.supervisor.sweep()
    return SweepResponse(
        failed_jobs=result.failed_jobs,
        failed_enhancements=result.failed_enhancements,
    )
