"""Pydantic schemas for API requests and responses."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class CompileRequest(BaseModel):
    """Compile request sent by the preview."""
    latexSource: Optional[str] = None


class DocumentSave(BaseModel):
    """Snapshot save request."""
    title: str = "Resume"
    content: str
    kind: str = "resume"


class DocumentVersionOut(BaseModel):
    """One persisted snapshot."""
    id: str
    title: str
    kind: str
    content: str
    createdAt: datetime


class SessionCreate(BaseModel):
    """Session creation request."""
    document_id: Optional[str] = None
    title: Optional[str] = None
    kind: str = "resume"


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)


class GenerateRequest(BaseModel):
    title: str = Field(min_length=1)


class ReviseRequest(BaseModel):
    description: str = Field(min_length=1)


class EditRequest(BaseModel):
    content: str


class NavigateRequest(BaseModel):
    direction: Literal["next", "prev", "toggle", "latest"]


class ActionRequest(BaseModel):
    """Artifact toolbar action."""
    action: Literal["show", "close", "toggle_fullscreen", "set_tab"]
    tab: Optional[Literal["latex", "preview"]] = None


class PreviewPagesRequest(BaseModel):
    """Report from the PDF renderer."""
    num_pages: Optional[int] = Field(default=None, ge=0)
    page_number: Optional[int] = None
    error: Optional[str] = None


class StreamRequest(BaseModel):
    """Raw model events to fold into the artifact."""
    events: List[Dict[str, Any]] = Field(default_factory=list)


class TaskAccepted(BaseModel):
    session_id: str
    status: str = "accepted"
