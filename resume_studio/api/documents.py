from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from resume_studio.memory import utils as db_utils
from resume_studio.memory.db import get_session_dependency
from resume_studio.memory.models import DocumentSnapshot
from resume_studio.utils.logging import get_logger
from resume_studio.utils.schemas import DocumentSave, DocumentVersionOut

LOGGER = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["documents"])


def _to_out(snapshot: DocumentSnapshot) -> DocumentVersionOut:
    return DocumentVersionOut(
        id=snapshot.document_id,
        title=snapshot.title,
        kind=snapshot.kind,
        content=snapshot.content,
        createdAt=snapshot.created_at,
    )


@router.get("/documents")
async def list_documents(
    session: AsyncSession = Depends(get_session_dependency),
    limit: int = Query(default=50, le=100),
    offset: int = Query(default=0, ge=0),
) -> dict:
    ids = await db_utils.list_document_ids(session, limit=limit, offset=offset)
    return {"documents": ids, "limit": limit, "offset": offset}


@router.get("/document", response_model=List[DocumentVersionOut])
async def get_document_versions(
    id: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_session_dependency),
) -> List[DocumentVersionOut]:
    snapshots = await db_utils.list_document_versions(session, id)
    if not snapshots:
        raise HTTPException(status_code=404, detail="Document not found")
    return [_to_out(s) for s in snapshots]


@router.post("/document")
async def save_document(
    payload: DocumentSave,
    response: Response,
    id: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_session_dependency),
) -> dict:
    snapshot = await db_utils.append_document_version(
        session, id, title=payload.title, content=payload.content, kind=payload.kind
    )
    if snapshot is None:
        # Same content as the latest snapshot: nothing new to store
        response.status_code = status.HTTP_200_OK
        return {"id": id, "saved": False}

    LOGGER.info("Saved snapshot of %s (%d chars)", id, len(payload.content))
    response.status_code = status.HTTP_201_CREATED
    return {"id": id, "saved": True, "createdAt": snapshot.created_at.isoformat()}
