"""Drive schemas: folders, files, uploads, move and reorder."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from .base import CamelModel, FolderRef, clean_name
from .document import DocumentResponse

ItemType = Literal["file", "doc", "folder"]


class FolderCreate(CamelModel):
    name: str
    parent_id: FolderRef = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return clean_name(v)


class FolderRename(CamelModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return clean_name(v)


class FolderResponse(CamelModel):
    id: str
    name: str
    owner_id: str
    parent_id: Optional[str] = None
    sort_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FolderDeleteResponse(CamelModel):
    """Result of a cascading folder delete."""
    id: str
    deleted_folders: int
    deleted_files: int
    deleted_documents: int


class FileRename(CamelModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return clean_name(v)


class FileResponse(CamelModel):
    id: str
    name: str
    owner_id: str
    folder_id: Optional[str] = None
    size: int = 0
    mime_type: str
    key: str
    sort_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    # Presigned download URL, computed per request and never stored.
    url: Optional[str] = None


class UploadInitRequest(CamelModel):
    name: str
    size: int = Field(default=0, ge=0)
    mime_type: str = "application/octet-stream"
    folder_id: FolderRef = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return clean_name(v)


class UploadInitResponse(CamelModel):
    file: FileResponse
    upload_url: str


class UploadFinalizeRequest(CamelModel):
    file_id: str


class ItemMoveRequest(CamelModel):
    """Move an item into ``folderId``; absent or null means the root."""
    item_type: ItemType
    item_id: str
    folder_id: FolderRef = None


class ItemReorderRequest(CamelModel):
    """New display order for items of one type inside ``folderId``."""
    item_type: ItemType
    folder_id: FolderRef = None
    ordered_ids: List[str]


class DriveListing(CamelModel):
    folders: List[FolderResponse]
    files: List[FileResponse]
    docs: List[DocumentResponse]
