"""Custom exception hierarchy for OpenDesk."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Drive errors
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"

    # Document errors
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"

    CONFLICT = "CONFLICT"

    # External collaborators
    CONVERSION_FAILED = "CONVERSION_FAILED"
    STORAGE_ERROR = "STORAGE_ERROR"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class OpenDeskError(Exception):
    """
    Base exception for all OpenDesk errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the JSON error body."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


# Not-found errors also cover records owned by another user, so that
# callers cannot probe for the existence of someone else's items.

class FolderNotFoundError(OpenDeskError):
    """Folder missing, deleted, or not owned by the requester."""

    def __init__(self, folder_id: str):
        super().__init__(
            "Folder not found",
            ErrorCode.FOLDER_NOT_FOUND,
            status_code=404,
            details={"folder_id": folder_id}
        )


class DriveFileNotFoundError(OpenDeskError):
    """File missing, deleted, or not owned by the requester."""

    def __init__(self, file_id: str):
        super().__init__(
            "File not found",
            ErrorCode.FILE_NOT_FOUND,
            status_code=404,
            details={"file_id": file_id}
        )


class DocumentNotFoundError(OpenDeskError):
    """Document missing, deleted, or not owned by the requester."""

    def __init__(self, doc_id: str):
        super().__init__(
            "Document not found",
            ErrorCode.DOCUMENT_NOT_FOUND,
            status_code=404,
            details={"doc_id": doc_id}
        )


class ValidationError(OpenDeskError):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class AuthenticationError(OpenDeskError):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ForbiddenError(OpenDeskError):
    """Authenticated user lacks permission for the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
        )


class ConflictError(OpenDeskError):
    """Request conflicts with an existing record."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details=details
        )


class ConversionError(OpenDeskError):
    """An export converter failed.

    The tool's own message goes into ``details`` for diagnostics; the
    user-facing message stays generic.
    """

    def __init__(self, fmt: str, reason: str = ""):
        super().__init__(
            f"Failed to convert document to {fmt}",
            ErrorCode.CONVERSION_FAILED,
            status_code=500,
            details={"format": fmt, "reason": reason}
        )


class StorageError(OpenDeskError):
    """Object store operation failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.STORAGE_ERROR,
            status_code=502,
            details=details
        )


NOT_FOUND_BY_ITEM_TYPE = {
    "folder": FolderNotFoundError,
    "file": DriveFileNotFoundError,
    "doc": DocumentNotFoundError,
}
