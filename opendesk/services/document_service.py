"""Document service: lifecycle of owned documents and their export.

Documents live in the same containers as drive files and share the
ordering and soft-delete rules of the other drive items. Content is a
validated node tree (see ``schemas.content``); by the time an update
reaches this service it has already passed the tagged-union check.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..models import Document, File
from ..repositories import DocumentRepository, FolderRepository
from ..schemas.content import dump_content
from ..schemas.document import DocumentUpdate, ExportRequest
from . import export_service
from .drive_service import DriveService
from .storage_service import StorageService

logger = logging.getLogger(__name__)

_EXTENSIONS = {"md": "md", "docx": "docx", "pdf": "pdf"}


def export_filename(title: str, fmt: str) -> str:
    """Attachment filename for an exported document."""
    stem = "".join(c if c.isalnum() or c in " ._-" else "_" for c in title).strip() or "document"
    return f"{stem}.{_EXTENSIONS[fmt]}"


class DocumentService:
    """Owner-scoped document operations.

    Public methods:
        create_document / get_document / update_document / delete_document
        list_documents  -- active documents of one container
        export_document -- render and convert; return bytes or store in the drive
    """

    def __init__(self, db: Session, storage: Optional[StorageService] = None):
        self.db = db
        self.storage = storage
        self.doc_repo = DocumentRepository(db)
        self.folder_repo = FolderRepository(db)

    def _require_folder(self, owner_id: str, folder_id: Optional[str]) -> None:
        if folder_id is not None:
            self.folder_repo.get_owned(owner_id, folder_id)

    def create_document(
        self,
        owner_id: str,
        title: str,
        folder_id: Optional[str] = None,
        settings: Optional[dict] = None,
    ) -> Document:
        self._require_folder(owner_id, folder_id)
        document = self.doc_repo.create(owner_id, title, folder_id, settings)
        self.db.commit()
        logger.info("Document created", extra={"doc_id": document.id, "owner_id": owner_id})
        return document

    def get_document(self, owner_id: str, doc_id: str) -> Document:
        return self.doc_repo.get_owned(owner_id, doc_id)

    def list_documents(self, owner_id: str, folder_id: Optional[str] = None) -> List[Document]:
        self._require_folder(owner_id, folder_id)
        return self.doc_repo.list_in_container(owner_id, folder_id)

    def update_document(self, owner_id: str, doc_id: str, update: DocumentUpdate) -> Document:
        """Apply only the fields present in the request body."""
        document = self.doc_repo.get_owned(owner_id, doc_id)

        fields = {}
        if "title" in update.model_fields_set and update.title is not None:
            fields["title"] = update.title
        if "content" in update.model_fields_set and update.content is not None:
            fields["content"] = dump_content(update.content)
        if "settings" in update.model_fields_set:
            fields["settings"] = update.settings

        if fields:
            document = self.doc_repo.update_fields(document, fields)
            self.db.commit()
            logger.info(
                "Document updated",
                extra={"doc_id": doc_id, "fields": sorted(fields)},
            )
        return document

    def delete_document(self, owner_id: str, doc_id: str) -> Document:
        document = self.doc_repo.get_owned(owner_id, doc_id)
        document = self.doc_repo.soft_delete(document)
        self.db.commit()
        logger.info("Document deleted", extra={"doc_id": doc_id, "owner_id": owner_id})
        return document

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def render_export(self, owner_id: str, doc_id: str, request: ExportRequest) -> Tuple[Document, bytes]:
        """Fetch the document, obtain its HTML and convert it to the requested format."""
        document = self.doc_repo.get_owned(owner_id, doc_id)
        if request.html is not None:
            source_html = export_service.sanitize_html(request.html)
        else:
            source_html = export_service.convert_content_to_html(document.content)
        return document, export_service.convert_html_to_format(source_html, request.format)

    def export_document(self, owner_id: str, doc_id: str, request: ExportRequest) -> Tuple[Document, bytes, Optional[File]]:
        """Export a document.

        For the ``local`` destination the converted bytes are returned and
        no file is created. For ``drive`` the bytes are stored as a new file
        in ``folder_id`` (the document's own folder unless the request names
        one) and that file is returned as well.
        """
        document, payload = self.render_export(owner_id, doc_id, request)
        if request.destination == "local":
            return document, payload, None

        target_folder = request.folder_id if "folder_id" in request.model_fields_set else document.folder_id
        drive = DriveService(self.db, self.storage)
        mime_type = export_service.CONTENT_TYPES[request.format].split(";")[0]
        try:
            db_file = drive.create_file_record(
                owner_id,
                export_filename(document.title, request.format),
                len(payload),
                mime_type,
                target_folder,
            )
            self.storage.put_object(db_file.key, payload, mime_type)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            "Document exported to drive",
            extra={"doc_id": doc_id, "file_id": db_file.id, "format": request.format},
        )
        return document, payload, db_file
