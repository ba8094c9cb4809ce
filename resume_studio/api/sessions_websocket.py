from __future__ import annotations

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from resume_studio.core.session_manager import SessionNotFound, session_manager
from resume_studio.core.ws_manager import get_ws_manager

router = APIRouter()


@router.websocket("/ws/sessions/{session_id}")
async def session_socket(websocket: WebSocket, session_id: str) -> None:
    manager = get_ws_manager()

    def greeting() -> dict:
        try:
            state = session_manager.get(session_id).snapshot()
        except SessionNotFound:
            state = None
        return {"type": "info", "msg": "connected", "session_id": session_id, "data": state}

    await manager.connect(session_id, websocket, greeting=greeting)
    try:
        while True:
            payload = await websocket.receive_text()
            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                continue
            if not isinstance(data, dict):
                continue
            if data.get("type") == "command" and data.get("command") == "stop":
                await session_manager.request_stop(session_id)
                manager.send(session_id, websocket, {"type": "info", "msg": "stop requested", "session_id": session_id})
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(session_id, websocket)
