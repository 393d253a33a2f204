"""Data access repositories."""

from .base import OwnedRepository
from .folder_repository import FolderRepository
from .file_repository import FileRepository
from .document_repository import DocumentRepository

__all__ = [
    "OwnedRepository",
    "FolderRepository",
    "FileRepository",
    "DocumentRepository",
]
