from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol

from pydantic import BaseModel, ConfigDict


class DocumentVersion(BaseModel):
    """One immutable snapshot in a document's history."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    kind: str = "resume"
    content: str
    created_at: datetime


class PersistenceError(RuntimeError):
    pass


class DocumentRepository(Protocol):
    async def list_versions(self, document_id: str) -> List[DocumentVersion]: ...

    async def append_version(
        self, document_id: str, *, title: str, content: str, kind: str = "resume"
    ) -> Optional[DocumentVersion]:
        """Append a snapshot; returns None when ``content`` equals the latest one."""
        ...
