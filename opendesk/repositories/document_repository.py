"""Document repository.

Every read goes through ``_base_query()``, so soft-deleted documents are
invisible to callers without them having to think about ``deleted_at``.
"""

from typing import Any, Optional

from sqlalchemy import func

from ..models import Document
from ..models.document import empty_content
from ..exceptions import DocumentNotFoundError
from .base import OwnedRepository


class DocumentRepository(OwnedRepository[Document]):
    """Repository for document CRUD operations."""

    model_class = Document
    not_found_error = DocumentNotFoundError

    def create(
        self,
        owner_id: str,
        title: str,
        folder_id: Optional[str] = None,
        settings: Optional[dict] = None,
    ) -> Document:
        document = Document(
            title=title,
            owner_id=owner_id,
            folder_id=folder_id,
            content=empty_content(),
            settings=settings,
            sort_order=self.next_sort_order(owner_id, folder_id),
        )
        self.db.add(document)
        self.db.flush()
        self.db.refresh(document)
        return document

    def update_fields(self, document: Document, fields: dict[str, Any]) -> Document:
        """Assign the given column values. Only keys present in *fields* change."""
        for name, value in fields.items():
            setattr(document, name, value)
        self.db.flush()
        self.db.refresh(document)
        return document

    def count_by_owner(self) -> dict[str, int]:
        """Active document count per owner id."""
        rows = (
            self._base_query()
            .with_entities(Document.owner_id, func.count(Document.id))
            .group_by(Document.owner_id)
            .all()
        )
        return {owner_id: count for owner_id, count in rows}
