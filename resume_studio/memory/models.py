from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Column, DateTime, Field, SQLModel, Text


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentSnapshot(SQLModel, table=True):
    __tablename__ = "document_snapshots"

    pk: Optional[int] = Field(default=None, primary_key=True)
    document_id: str = Field(index=True)
    title: str
    kind: str = Field(default="resume")
    content: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
