from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import DocumentSnapshot


async def list_document_versions(session: AsyncSession, document_id: str) -> List[DocumentSnapshot]:
    result = await session.execute(
        select(DocumentSnapshot)
        .where(DocumentSnapshot.document_id == document_id)
        .order_by(DocumentSnapshot.created_at.asc(), DocumentSnapshot.pk.asc())
    )
    return list(result.scalars().all())


async def get_latest_document_version(
    session: AsyncSession, document_id: str
) -> Optional[DocumentSnapshot]:
    result = await session.execute(
        select(DocumentSnapshot)
        .where(DocumentSnapshot.document_id == document_id)
        .order_by(DocumentSnapshot.created_at.desc(), DocumentSnapshot.pk.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def append_document_version(
    session: AsyncSession,
    document_id: str,
    *,
    title: str,
    content: str,
    kind: str = "resume",
    commit: bool = True,
) -> Optional[DocumentSnapshot]:
    """Append a snapshot unless the latest one already holds ``content``."""
    latest = await get_latest_document_version(session, document_id)
    if latest is not None and latest.content == content:
        return None

    snapshot = DocumentSnapshot(document_id=document_id, title=title, kind=kind, content=content)
    session.add(snapshot)
    if commit:
        await session.commit()
        await session.refresh(snapshot)
    return snapshot


async def list_document_ids(session: AsyncSession, *, limit: int = 50, offset: int = 0) -> List[str]:
    result = await session.execute(
        select(DocumentSnapshot.document_id)
        .group_by(DocumentSnapshot.document_id)
        .order_by(DocumentSnapshot.document_id)
        .limit(limit)
        .offset(offset)
    )
    return [row[0] for row in result.all()]
