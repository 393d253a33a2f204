"""Drive service: folders, files, listing, move and reorder.

Public methods:
    list_contents    -- folders, files and docs of one container
    create_folder / rename_folder / delete_folder
    init_upload / upload_file / finalize_upload
    get_file / open_file_stream / rename_file / delete_file
    move_item        -- re-parent a file, doc or folder; always appends
    reorder_items    -- rewrite sibling order in one transaction

Every operation is scoped to ``owner_id``. Items owned by someone else
are reported with the same not-found error as missing ones.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..exceptions import NOT_FOUND_BY_ITEM_TYPE, StorageError, ValidationError
from ..models import File, Folder
from ..repositories import DocumentRepository, FileRepository, FolderRepository
from ..repositories.base import OwnedRepository
from ..schemas.document import DocumentResponse
from ..schemas.drive import DriveListing, FileResponse, FolderResponse
from .storage_service import StorageService

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def build_object_key(owner_id: str, name: str) -> str:
    """``{owner_id}/{uuid4}-{name}`` with the name reduced to key-safe characters."""
    safe_name = _UNSAFE_KEY_CHARS.sub("_", name).strip("._") or "file"
    return f"{owner_id}/{uuid.uuid4()}-{safe_name}"


class DriveService:
    """Owner-scoped drive operations on top of the three item repositories."""

    def __init__(self, db: Session, storage: StorageService):
        self.db = db
        self.storage = storage
        self.folder_repo = FolderRepository(db)
        self.file_repo = FileRepository(db)
        self.doc_repo = DocumentRepository(db)

    def _repo_for(self, item_type: str) -> OwnedRepository:
        return {
            "folder": self.folder_repo,
            "file": self.file_repo,
            "doc": self.doc_repo,
        }[item_type]

    def _require_folder(self, owner_id: str, folder_id: Optional[str]) -> None:
        """A non-null container must be an active folder of the same owner."""
        if folder_id is not None:
            self.folder_repo.get_owned(owner_id, folder_id)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def file_response(self, db_file: File) -> FileResponse:
        """Serialize a file with a fresh presigned download URL.

        URL generation failures leave ``url`` null instead of failing the
        whole listing.
        """
        response = FileResponse.model_validate(db_file)
        try:
            response.url = self.storage.presigned_get_url(db_file.key)
        except StorageError as e:
            logger.warning(
                "Could not presign download URL",
                extra={"file_id": db_file.id, "error": e.message},
            )
        return response

    def list_contents(self, owner_id: str, folder_id: Optional[str]) -> DriveListing:
        self._require_folder(owner_id, folder_id)

        folders = self.folder_repo.list_in_container(owner_id, folder_id)
        files = self.file_repo.list_in_container(owner_id, folder_id)
        docs = self.doc_repo.list_in_container(owner_id, folder_id)

        return DriveListing(
            folders=[FolderResponse.model_validate(f) for f in folders],
            files=[self.file_response(f) for f in files],
            docs=[DocumentResponse.model_validate(d) for d in docs],
        )

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def create_folder(self, owner_id: str, name: str, parent_id: Optional[str] = None) -> Folder:
        self._require_folder(owner_id, parent_id)
        folder = self.folder_repo.create(owner_id, name, parent_id)
        self.db.commit()
        logger.info("Folder created", extra={"folder_id": folder.id, "owner_id": owner_id})
        return folder

    def rename_folder(self, owner_id: str, folder_id: str, name: str) -> Folder:
        folder = self.folder_repo.get_owned(owner_id, folder_id)
        folder = self.folder_repo.rename(folder, name)
        self.db.commit()
        return folder

    def delete_folder(self, owner_id: str, folder_id: str) -> Dict[str, int]:
        """Soft-delete a folder together with everything below it.

        The whole subtree is stamped with one ``deleted_at`` so the trash
        reaper purges it as a unit.
        """
        folder = self.folder_repo.get_owned(owner_id, folder_id)
        subtree = [folder.id] + self.folder_repo.descendant_ids(owner_id, folder.id)
        when = datetime.now(timezone.utc)

        try:
            counts = {
                "deleted_files": self.file_repo.mark_deleted(
                    self.file_repo.owned_in_containers(owner_id, subtree), when
                ),
                "deleted_documents": self.doc_repo.mark_deleted(
                    self.doc_repo.owned_in_containers(owner_id, subtree), when
                ),
                "deleted_folders": self.folder_repo.mark_deleted(
                    self.folder_repo.get_many_owned(owner_id, subtree), when
                ),
            }
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Folder deleted", extra={"folder_id": folder_id, "owner_id": owner_id, **counts})
        return counts

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def create_file_record(
        self,
        owner_id: str,
        name: str,
        size: int,
        mime_type: str,
        folder_id: Optional[str] = None,
    ) -> File:
        """Insert a File row with a fresh object key. Does not commit."""
        self._require_folder(owner_id, folder_id)
        return self.file_repo.create(
            owner_id=owner_id,
            name=name,
            key=build_object_key(owner_id, name),
            size=size,
            mime_type=mime_type,
            folder_id=folder_id,
        )

    def init_upload(
        self,
        owner_id: str,
        name: str,
        size: int,
        mime_type: str,
        folder_id: Optional[str] = None,
    ) -> Tuple[File, str]:
        """Create the File row and return it with a presigned PUT URL."""
        db_file = self.create_file_record(owner_id, name, size, mime_type, folder_id)
        try:
            upload_url = self.storage.presigned_put_url(db_file.key)
        except StorageError:
            self.db.rollback()
            raise
        self.db.commit()
        logger.info("Upload initialized", extra={"file_id": db_file.id, "owner_id": owner_id})
        return db_file, upload_url

    def upload_file(
        self,
        owner_id: str,
        file_id: str,
        data: BinaryIO,
        mime_type: Optional[str] = None,
    ) -> File:
        """Stream bytes to the object store under the file's key."""
        db_file = self.file_repo.get_owned(owner_id, file_id)
        self.storage.put_object(db_file.key, data, mime_type or db_file.mime_type)
        return db_file

    def finalize_upload(self, owner_id: str, file_id: str) -> File:
        """Record the stored object's real size. Raises StorageError if it is missing."""
        db_file = self.file_repo.get_owned(owner_id, file_id)
        size = self.storage.stat_object(db_file.key)
        db_file = self.file_repo.set_size(db_file, size)
        self.db.commit()
        return db_file

    def get_file(self, owner_id: str, file_id: str) -> File:
        return self.file_repo.get_owned(owner_id, file_id)

    def open_file_stream(self, owner_id: str, file_id: str) -> Tuple[File, Iterator[bytes]]:
        db_file = self.file_repo.get_owned(owner_id, file_id)
        return db_file, self.storage.get_object_stream(db_file.key)

    def rename_file(self, owner_id: str, file_id: str, name: str) -> File:
        db_file = self.file_repo.get_owned(owner_id, file_id)
        db_file = self.file_repo.rename(db_file, name)
        self.db.commit()
        return db_file

    def delete_file(self, owner_id: str, file_id: str) -> File:
        """Soft delete. The blob stays until the trash reaper purges it."""
        db_file = self.file_repo.get_owned(owner_id, file_id)
        db_file = self.file_repo.soft_delete(db_file)
        self.db.commit()
        logger.info("File deleted", extra={"file_id": file_id, "owner_id": owner_id})
        return db_file

    # ------------------------------------------------------------------
    # Move / reorder
    # ------------------------------------------------------------------

    def move_item(
        self,
        owner_id: str,
        item_type: str,
        item_id: str,
        folder_id: Optional[str] = None,
    ):
        """Move an item into *folder_id* (None = root), appended after its new siblings."""
        repo = self._repo_for(item_type)
        item = repo.get_owned(owner_id, item_id)
        self._require_folder(owner_id, folder_id)

        if item_type == "folder" and folder_id is not None:
            if folder_id == item.id or folder_id in self.folder_repo.descendant_ids(owner_id, item.id):
                raise ValidationError("Cannot move a folder into itself or its descendants", field="folderId")

        try:
            item = repo.move_to(item, folder_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            "Item moved",
            extra={"item_type": item_type, "item_id": item_id, "folder_id": folder_id},
        )
        return item

    def reorder_items(
        self,
        owner_id: str,
        item_type: str,
        folder_id: Optional[str],
        ordered_ids: Sequence[str],
    ) -> List:
        """Assign ``sort_order = position + 1`` to each id, all or nothing.

        Every id must be an active item of *item_type* owned by *owner_id*
        in *folder_id*. Ids of the container that are not listed keep
        their current positions.
        """
        if len(set(ordered_ids)) != len(ordered_ids):
            raise ValidationError("orderedIds contains duplicates", field="orderedIds")
        if not ordered_ids:
            return []

        repo = self._repo_for(item_type)
        found = repo.count_owned_in_container(owner_id, folder_id, ordered_ids)
        if found != len(ordered_ids):
            logger.info(
                "Reorder rejected",
                extra={"item_type": item_type, "expected": len(ordered_ids), "found": found},
            )
            raise NOT_FOUND_BY_ITEM_TYPE[item_type](",".join(ordered_ids))

        try:
            repo.apply_order(owner_id, ordered_ids)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        items = {item.id: item for item in repo.list_in_container(owner_id, folder_id)}
        return [items[item_id] for item_id in ordered_ids if item_id in items]
