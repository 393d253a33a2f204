"""File repository."""

from typing import Optional

from sqlalchemy import func

from ..models import File
from ..exceptions import DriveFileNotFoundError
from .base import OwnedRepository


class FileRepository(OwnedRepository[File]):
    """Drive file rows. The bytes themselves belong to the object store."""

    model_class = File
    not_found_error = DriveFileNotFoundError

    def create(
        self,
        owner_id: str,
        name: str,
        key: str,
        size: int,
        mime_type: str,
        folder_id: Optional[str] = None,
    ) -> File:
        db_file = File(
            name=name,
            owner_id=owner_id,
            folder_id=folder_id,
            key=key,
            size=size,
            mime_type=mime_type,
            sort_order=self.next_sort_order(owner_id, folder_id),
        )
        self.db.add(db_file)
        self.db.flush()
        self.db.refresh(db_file)
        return db_file

    def rename(self, db_file: File, name: str) -> File:
        db_file.name = name
        self.db.flush()
        self.db.refresh(db_file)
        return db_file

    def set_size(self, db_file: File, size: int) -> File:
        db_file.size = size
        self.db.flush()
        self.db.refresh(db_file)
        return db_file

    def count_by_owner(self) -> dict[str, int]:
        """Active file count per owner id."""
        rows = (
            self._base_query()
            .with_entities(File.owner_id, func.count(File.id))
            .group_by(File.owner_id)
            .all()
        )
        return {owner_id: count for owner_id, count in rows}
