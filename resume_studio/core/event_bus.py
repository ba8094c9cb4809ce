from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from resume_studio.core.ws_manager import get_ws_manager
from resume_studio.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SessionEvent(BaseModel):
    type: str = Field(default="event")
    timestamp: str
    session_id: str
    level: str = Field(default="info")
    msg: str
    data: Dict[str, Any] = Field(default_factory=dict)


def emit_session_event(
    session_id: str,
    msg: str,
    *,
    type: str = "event",
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
) -> int:
    payload = SessionEvent(
        type=type,
        timestamp=datetime.now(timezone.utc).isoformat(),
        session_id=session_id,
        level=level,
        msg=msg,
        data=data or {},
    )

    # WS (best effort)
    try:
        return get_ws_manager().publish(session_id, payload.model_dump())
    except Exception:
        LOGGER.exception("Failed to queue WS event for session %s", session_id)
        return 0
