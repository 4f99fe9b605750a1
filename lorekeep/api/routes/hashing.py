# lorekeep/api/routes/hashing.py
"""Content-hash service."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from lorekeep.api.error_handlers import handle_api_errors
from lorekeep.api.models.schemas import HashRequest
from lorekeep.ingest.hashing import fingerprint, fingerprint_many

router = APIRouter(tags=["hashing"])


@router.post("/hash")
@handle_api_errors
async def compute_hash(request: HashRequest):
    """
    Fingerprint document text.

    {content} returns {hash}; {contents: [...]} returns {hashes: [...]}.
    """
    if request.content is not None:
        return {"hash": fingerprint(request.content)}
    if request.contents is not None:
        return {"hashes": fingerprint_many(request.contents)}
    return JSONResponse(status_code=400, content={"error": "Provide content or contents"})
