"""Shared query parameters."""

from typing import Optional

from fastapi import Query

from ..schemas.base import blank_to_none


def folder_id_query(folder_id: Optional[str] = Query(None, alias="folderId")) -> Optional[str]:
    """``?folderId=`` and a missing ``folderId`` both select the root."""
    return blank_to_none(folder_id)
