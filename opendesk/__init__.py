"""OpenDesk backend: documents, drive, and export."""

__version__ = "1.0.0"
