# lorekeep/api/routes/knowledge.py
"""Knowledge items and user corrections."""

from typing import Optional

from fastapi import APIRouter, Depends

from lorekeep.api.dependencies import Services, get_services
from lorekeep.api.error_handlers import handle_api_errors
from lorekeep.api.models.schemas import KnowledgeEditRequest
from lorekeep.knowledge.models import KnowledgeCategory

router = APIRouter(tags=["knowledge"])


@router.get("/projects/{project_id}/knowledge")
@handle_api_errors
async def list_knowledge(
    project_id: str,
    category: Optional[KnowledgeCategory] = None,
    services: Services = Depends(get_services),
):
    return [i.model_dump(mode="json") for i in services.knowledge_store.list(project_id, category)]


@router.patch("/knowledge/{item_id}")
@handle_api_errors
async def edit_knowledge(
    item_id: str,
    request: KnowledgeEditRequest,
    services: Services = Depends(get_services),
):
    """Apply a user correction; the item becomes verified with confidence 1.0."""
    item = services.knowledge_store.get(item_id)
    if item is None:
        raise KeyError(f"Knowledge item not found: {item_id}")
    item.apply_user_edit(**request.fields())
    services.knowledge_store.upsert([item])
    return item.model_dump(mode="json")


@router.get("/merge-audit")
@handle_api_errors
async def merge_audit(services: Services = Depends(get_services)):
    return [e.model_dump(mode="json") for e in services.audit_log.entries]
