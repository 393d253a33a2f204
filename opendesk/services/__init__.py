"""Business logic services."""

from .document_service import DocumentService
from .drive_service import DriveService
from .storage_service import StorageService, get_storage

__all__ = ["DocumentService", "DriveService", "StorageService", "get_storage"]
