# lorekeep/api/routes/changes.py
"""Change tracking, selective revert and the enhancement lifecycle."""

from fastapi import APIRouter, Depends

from lorekeep.api.dependencies import Services, get_services
from lorekeep.api.error_handlers import handle_api_errors
from lorekeep.api.models.schemas import (
    ApplyRequest,
    ApplyResponse,
    BeginEnhancementRequest,
    CompleteEnhancementRequest,
    DecisionRequest,
    DiffRequest,
    DiffResponse,
    FinalizeResponse,
)
from lorekeep.changes.applicator import ChangeApplicator
from lorekeep.changes.tracker import ChangeTracker

router = APIRouter(tags=["changes"])


@router.post("/changes/diff", response_model=DiffResponse)
@handle_api_errors
async def diff(request: DiffRequest) -> DiffResponse:
    changes = ChangeTracker().track(request.original, request.enhanced)
    return DiffResponse(records=changes.records, by_type=changes.by_type())


@router.post("/changes/apply", response_model=ApplyResponse)
@handle_api_errors
async def apply(request: ApplyRequest) -> ApplyResponse:
    """Revert every record marked rejected. 400 if a span does not match."""
    result = ChangeApplicator().apply(request.enhanced, request.records)
    return ApplyResponse(text=result.text, reverted=result.reverted)


@router.post("/enhancements", status_code=201)
@handle_api_errors
async def begin_enhancement(
    request: BeginEnhancementRequest,
    services: Services = Depends(get_services),
):
    record = services.enhancements.begin(request.project_id, request.document_id, request.original_text)
    return record.model_dump(mode="json")


@router.get("/enhancements/{enhancement_id}")
@handle_api_errors
async def get_enhancement(enhancement_id: str, services: Services = Depends(get_services)):
    return services.enhancements.store.get(enhancement_id).model_dump(mode="json")


@router.post("/enhancements/{enhancement_id}/complete")
@handle_api_errors
async def complete_enhancement(
    enhancement_id: str,
    request: CompleteEnhancementRequest,
    services: Services = Depends(get_services),
):
    record = services.enhancements.complete(enhancement_id, request.enhanced_text)
    return record.model_dump(mode="json")


@router.post("/enhancements/{enhancement_id}/changes/{change_id}")
@handle_api_errors
async def decide_change(
    enhancement_id: str,
    change_id: str,
    request: DecisionRequest,
    services: Services = Depends(get_services),
):
    record = services.enhancements.decide(enhancement_id, change_id, request.decision)
    return record.model_dump(mode="json")


@router.post("/enhancements/{enhancement_id}/finalize", response_model=FinalizeResponse)
@handle_api_errors
async def finalize_enhancement(
    enhancement_id: str,
    services: Services = Depends(get_services),
) -> FinalizeResponse:
    text = services.enhancements.finalize(enhancement_id)
    return FinalizeResponse(enhancement_id=enhancement_id, text=text)
