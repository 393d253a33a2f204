"""Pydantic schemas for API validation."""

from .content import DocNode
from .drive import (
    FolderCreate,
    FolderRename,
    FolderResponse,
    FolderDeleteResponse,
    FileRename,
    FileResponse,
    UploadInitRequest,
    UploadInitResponse,
    UploadFinalizeRequest,
    ItemMoveRequest,
    ItemReorderRequest,
    DriveListing,
)
from .document import (
    DocumentCreate,
    DocumentUpdate,
    DocumentResponse,
    ExportRequest,
)

__all__ = [
    "DocNode",
    "FolderCreate",
    "FolderRename",
    "FolderResponse",
    "FolderDeleteResponse",
    "FileRename",
    "FileResponse",
    "UploadInitRequest",
    "UploadInitResponse",
    "UploadFinalizeRequest",
    "ItemMoveRequest",
    "ItemReorderRequest",
    "DriveListing",
    "DocumentCreate",
    "DocumentUpdate",
    "DocumentResponse",
    "ExportRequest",
]
