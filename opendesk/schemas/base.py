"""Shared schema configuration.

The wire format is camelCase (``folderId``, ``sortOrder``); Python code
uses snake_case. Requests are accepted in either form.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def blank_to_none(value):
    """Map an empty or blank container id to ``None`` (the root)."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


# Container reference in requests: null, "" and absent all mean the root.
FolderRef = Annotated[Optional[str], BeforeValidator(blank_to_none)]


def clean_name(value: str) -> str:
    """Strip surrounding whitespace; reject empty names and path separators."""
    value = value.strip()
    if not value:
        raise ValueError("Name cannot be empty")
    if "/" in value:
        raise ValueError("Name cannot contain '/'")
    return value


def clean_title(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Title cannot be empty")
    return value
