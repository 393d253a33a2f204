"""Document model."""

import uuid

from sqlalchemy import Column, ForeignKey, Index, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from ..database import Base


def empty_content() -> dict:
    return {"type": "doc", "content": []}


class Document(Base):
    """Rich-text document. ``content`` is the editor's JSON node tree."""

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_owner_folder", "owner_id", "folder_id"),
        Index("ix_documents_updated_at", "updated_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    folder_id = Column(String(36), ForeignKey("folders.id", ondelete="SET NULL"), nullable=True)

    content = Column(JSON, nullable=False, default=empty_content)
    # Editor/page settings, stored as given.
    settings = Column(JSON, nullable=True)

    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    deleted_at = Column(DateTime(timezone=True), nullable=True, default=None)
