"""Folder repository: creation, renaming, and subtree traversal."""

from typing import List, Optional

from ..models import Folder
from ..exceptions import FolderNotFoundError
from .base import OwnedRepository


class FolderRepository(OwnedRepository[Folder]):
    """Folders are ordered among siblings sharing ``parent_id``."""

    model_class = Folder
    container_column = "parent_id"
    not_found_error = FolderNotFoundError

    def create(self, owner_id: str, name: str, parent_id: Optional[str] = None) -> Folder:
        folder = Folder(
            name=name,
            owner_id=owner_id,
            parent_id=parent_id,
            sort_order=self.next_sort_order(owner_id, parent_id),
        )
        self.db.add(folder)
        self.db.flush()
        self.db.refresh(folder)
        return folder

    def rename(self, folder: Folder, name: str) -> Folder:
        folder.name = name
        self.db.flush()
        self.db.refresh(folder)
        return folder

    def descendant_ids(self, owner_id: str, folder_id: str) -> List[str]:
        """Ids of all active folders below *folder_id* (breadth-first, excluding itself)."""
        found: List[str] = []
        frontier = [folder_id]
        while frontier:
            children = (
                self._owned_query(owner_id)
                .filter(Folder.parent_id.in_(frontier))
                .with_entities(Folder.id)
                .all()
            )
            frontier = [row[0] for row in children if row[0] not in found]
            found.extend(frontier)
        return found
