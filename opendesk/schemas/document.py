"""Document schemas."""

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import field_validator

from .base import CamelModel, FolderRef, clean_title
from .content import DocNode


class DocumentCreate(CamelModel):
    title: str
    folder_id: FolderRef = None
    settings: Optional[Dict[str, Any]] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return clean_title(v)


class DocumentUpdate(CamelModel):
    """Partial update. Only fields present in the request body are applied."""
    title: Optional[str] = None
    content: Optional[DocNode] = None
    settings: Optional[Dict[str, Any]] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return clean_title(v) if v is not None else v


class DocumentResponse(CamelModel):
    id: str
    title: str
    owner_id: str
    folder_id: Optional[str] = None
    content: Dict[str, Any]
    settings: Optional[Dict[str, Any]] = None
    sort_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


ExportFormat = Literal["pdf", "docx", "md"]


class ExportRequest(CamelModel):
    format: ExportFormat
    destination: Literal["local", "drive"] = "local"
    # Editor-rendered HTML; when omitted the server renders stored content.
    html: Optional[str] = None
    # Drive destination folder; defaults to the document's own folder.
    folder_id: FolderRef = None
