from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response

from resume_studio.core.handles import get_handle_registry

router = APIRouter(prefix="/api/previews", tags=["previews"])


@router.get("/{key}")
async def read_preview(key: str) -> Response:
    data = get_handle_registry().get(key)
    if data is None:
        # Released handles are gone for good
        raise HTTPException(status_code=404, detail="Preview not found")
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": 'inline; filename="resume.pdf"', "Cache-Control": "no-store"},
    )
