"""Document API endpoints.

Endpoints are thin; DocumentService handles ownership, ordering and the
export pipeline.
"""

from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.document import DocumentCreate, DocumentResponse, DocumentUpdate, ExportRequest
from ..services import DocumentService, DriveService, StorageService, get_storage
from ..services.document_service import export_filename
from ..services.export_service import CONTENT_TYPES
from .params import folder_id_query

router = APIRouter(prefix="/docs", tags=["Documents"])


def get_document_service(
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
) -> DocumentService:
    return DocumentService(db, storage)


@router.post("", response_model=DocumentResponse, status_code=201)
def create_document(
    body: DocumentCreate,
    service: DocumentService = Depends(get_document_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.create_document(auth.user_id, body.title, body.folder_id, body.settings)


@router.get("", response_model=List[DocumentResponse])
def list_documents(
    folder_id: Optional[str] = Depends(folder_id_query),
    service: DocumentService = Depends(get_document_service),
    auth: AuthContext = Depends(require_auth),
):
    """Active documents of one container; no ``folderId`` means the root."""
    return service.list_documents(auth.user_id, folder_id)


@router.get("/{doc_id}", response_model=DocumentResponse)
def get_document(
    doc_id: str,
    service: DocumentService = Depends(get_document_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.get_document(auth.user_id, doc_id)


@router.put("/{doc_id}", response_model=DocumentResponse)
def update_document(
    doc_id: str,
    body: DocumentUpdate,
    service: DocumentService = Depends(get_document_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.update_document(auth.user_id, doc_id, body)


@router.delete("/{doc_id}", response_model=DocumentResponse)
def delete_document(
    doc_id: str,
    service: DocumentService = Depends(get_document_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.delete_document(auth.user_id, doc_id)


@router.post("/{doc_id}/export")
def export_document(
    doc_id: str,
    body: ExportRequest,
    service: DocumentService = Depends(get_document_service),
    auth: AuthContext = Depends(require_auth),
):
    """Convert a document to md, docx or pdf.

    ``local`` returns the file as an attachment; ``drive`` stores it as a
    new drive file and returns that file's record.
    """
    document, payload, db_file = service.export_document(auth.user_id, doc_id, body)
    if db_file is not None:
        drive = DriveService(service.db, service.storage)
        return JSONResponse(
            status_code=201,
            content=drive.file_response(db_file).model_dump(mode="json", by_alias=True),
        )

    filename = export_filename(document.title, body.format)
    return Response(
        content=payload,
        media_type=CONTENT_TYPES[body.format],
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )
