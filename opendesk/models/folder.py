"""Folder model."""

import uuid

from sqlalchemy import Column, ForeignKey, Index, Integer, String, DateTime
from sqlalchemy.sql import func
from ..database import Base


class Folder(Base):
    """A drive folder. ``parent_id`` NULL means the owner's root."""

    __tablename__ = "folders"
    __table_args__ = (
        Index("ix_folders_owner_parent", "owner_id", "parent_id"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(String(36), ForeignKey("folders.id", ondelete="CASCADE"), nullable=True)

    # Display position among siblings sharing (owner_id, parent_id).
    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Soft delete (NULL = active). Set on the whole subtree at once.
    deleted_at = Column(DateTime(timezone=True), nullable=True, default=None)
