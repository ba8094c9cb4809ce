from __future__ import annotations

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from resume_studio.core.repository import DocumentVersion, PersistenceError
from resume_studio.utils.logging import get_logger

from . import utils as db_utils
from .db import get_session
from .models import DocumentSnapshot

LOGGER = get_logger(__name__)


def to_version(snapshot: DocumentSnapshot) -> DocumentVersion:
    return DocumentVersion(
        id=snapshot.document_id,
        title=snapshot.title,
        kind=snapshot.kind,
        content=snapshot.content,
        created_at=snapshot.created_at,
    )


class SqlDocumentRepository:
    """DocumentRepository backed by the SQLModel snapshot table."""

    async def list_versions(self, document_id: str) -> List[DocumentVersion]:
        try:
            async with get_session() as session:
                snapshots = await db_utils.list_document_versions(session, document_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load history for {document_id}: {exc}") from exc
        return [to_version(s) for s in snapshots]

    async def append_version(
        self, document_id: str, *, title: str, content: str, kind: str = "resume"
    ) -> Optional[DocumentVersion]:
        try:
            async with get_session() as session:
                snapshot = await db_utils.append_document_version(
                    session, document_id, title=title, content=content, kind=kind
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save {document_id}: {exc}") from exc
        if snapshot is None:
            LOGGER.debug("Skipped identical snapshot for %s", document_id)
            return None
        LOGGER.info("Saved snapshot of %s (%d chars)", document_id, len(content))
        return to_version(snapshot)
