"""Database models."""

from .user import User
from .folder import Folder
from .file import File
from .document import Document

__all__ = ["User", "Folder", "File", "Document"]
