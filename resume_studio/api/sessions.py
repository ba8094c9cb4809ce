from __future__ import annotations

from typing import Any, Dict, Literal

from fastapi import APIRouter, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse

from resume_studio.compiler.base import CompileError
from resume_studio.core.repository import PersistenceError
from resume_studio.core.session import ArtifactSession
from resume_studio.core.session_manager import SessionBusy, SessionNotFound, session_manager
from resume_studio.utils.logging import get_logger
from resume_studio.utils.schemas import (
    ActionRequest,
    ChatRequest,
    EditRequest,
    GenerateRequest,
    NavigateRequest,
    PreviewPagesRequest,
    ReviseRequest,
    SessionCreate,
    StreamRequest,
)

LOGGER = get_logger(__name__)
router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _get(session_id: str) -> ArtifactSession:
    try:
        return session_manager.get(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc


async def _start(session_id: str, factory, label: str, wait: bool) -> Dict[str, Any]:
    _get(session_id)
    try:
        session_manager.start_task(session_id, factory, label=label)
    except SessionBusy as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if wait:
        await session_manager.wait(session_id)
        return _get(session_id).snapshot()
    return {"session_id": session_id, "status": "accepted"}


@router.get("")
async def list_sessions() -> dict:
    return {
        "sessions": [
            {"session_id": s.id, "document_id": s.document_id, "busy": session_manager.is_busy(s.id)}
            for s in session_manager.list()
        ]
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(payload: SessionCreate) -> dict:
    try:
        session = await session_manager.create(
            document_id=payload.document_id, title=payload.title, kind=payload.kind
        )
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=f"Unknown artifact kind: {payload.kind}") from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return session.snapshot()


@router.get("/{session_id}")
async def get_session_state(session_id: str) -> dict:
    return _get(session_id).snapshot()


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str) -> Response:
    try:
        await session_manager.close(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Streams


@router.post("/{session_id}/chat", status_code=status.HTTP_202_ACCEPTED)
async def chat(session_id: str, payload: ChatRequest, wait: bool = Query(default=False)) -> dict:
    return await _start(session_id, lambda s: s.chat(payload.message), "Chat", wait)


@router.get("/{session_id}/messages")
async def list_messages(session_id: str) -> list:
    return [m.model_dump() for m in _get(session_id).messages]


@router.post("/{session_id}/generate", status_code=status.HTTP_202_ACCEPTED)
async def generate(session_id: str, payload: GenerateRequest, wait: bool = Query(default=False)) -> dict:
    return await _start(session_id, lambda s: s.generate(payload.title), "Generate", wait)


@router.post("/{session_id}/revise", status_code=status.HTTP_202_ACCEPTED)
async def revise(session_id: str, payload: ReviseRequest, wait: bool = Query(default=False)) -> dict:
    return await _start(session_id, lambda s: s.revise(payload.description), "Revise", wait)


@router.post("/{session_id}/stream")
async def stream_events(session_id: str, payload: StreamRequest) -> dict:
    session = _get(session_id)
    if session_manager.is_busy(session_id):
        raise HTTPException(status_code=409, detail=f"Session {session_id} is already streaming")
    await session.run_stream(payload.events)
    return session.snapshot()


@router.post("/{session_id}/stop")
async def stop(session_id: str) -> dict:
    _get(session_id)
    stopped = await session_manager.request_stop(session_id)
    return {"session_id": session_id, "stopped": stopped}


# Editor


@router.put("/{session_id}/content")
async def edit_content(session_id: str, payload: EditRequest) -> dict:
    session = _get(session_id)
    if not session.edit(payload.content):
        raise HTTPException(status_code=409, detail="Editor is read-only")
    return session.snapshot()


@router.post("/{session_id}/save")
async def save_content(session_id: str) -> dict:
    session = _get(session_id)
    await session.editor.flush()
    return session.snapshot()


# History


@router.get("/{session_id}/versions")
async def list_versions(session_id: str) -> dict:
    session = _get(session_id)
    navigator = session.navigator
    return {
        "cursor": navigator.cursor.model_dump(),
        "mode": navigator.mode,
        "is_current_version": navigator.is_current_version,
        "diff": navigator.diff(),
        "versions": [v.model_dump() for v in navigator.history],
    }


@router.post("/{session_id}/versions/navigate")
async def navigate(session_id: str, payload: NavigateRequest) -> dict:
    session = _get(session_id)
    await session.navigate(payload.direction)
    return session.snapshot()


@router.post("/{session_id}/versions/refresh")
async def refresh_versions(session_id: str) -> dict:
    session = _get(session_id)
    try:
        await session.refresh_history()
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return session.snapshot()


@router.post("/{session_id}/versions/restore")
async def restore_version(session_id: str) -> dict:
    session = _get(session_id)
    if session.navigator.is_current_version:
        raise HTTPException(status_code=409, detail="Already on the latest version")
    try:
        await session.restore_version()
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return session.snapshot()


# Toolbar


@router.post("/{session_id}/actions")
async def run_action(session_id: str, payload: ActionRequest) -> dict:
    session = _get(session_id)
    if payload.action == "show":
        session.show()
    elif payload.action == "close":
        session.close()
    elif payload.action == "toggle_fullscreen":
        session.toggle_fullscreen()
    elif payload.action == "set_tab":
        if payload.tab is None:
            raise HTTPException(status_code=400, detail="tab is required for set_tab")
        session.set_active_tab(payload.tab)
    return session.snapshot()


@router.get("/{session_id}/copy", response_class=PlainTextResponse)
async def copy_content(session_id: str) -> str:
    return _get(session_id).copy()


@router.get("/{session_id}/export")
async def export(session_id: str, format: Literal["pdf", "tex"] = Query(default="pdf")) -> Response:
    session = _get(session_id)
    try:
        data, media_type, filename = await session.export(format)
    except CompileError as exc:
        return JSONResponse(
            status_code=500,
            content={"error": "PDF compilation failed", "details": exc.message, "log": exc.log},
        )
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# Preview


@router.get("/{session_id}/preview")
async def preview_state(session_id: str) -> dict:
    return _get(session_id).preview.state.model_dump()


@router.post("/{session_id}/preview/compile")
async def compile_preview(session_id: str) -> dict:
    session = _get(session_id)
    state = await session.preview.compile_now(session.navigator.effective_content())
    return state.model_dump()


@router.post("/{session_id}/preview/pages")
async def report_pages(session_id: str, payload: PreviewPagesRequest) -> dict:
    preview = _get(session_id).preview
    if payload.error is not None:
        preview.on_document_load_error(payload.error)
    if payload.num_pages is not None:
        preview.on_document_loaded(payload.num_pages)
    if payload.page_number is not None:
        preview.set_page(payload.page_number)
    return preview.state.model_dump()
