"""Drive API endpoints: listing, folders, uploads, downloads, move and reorder.

Endpoints are thin; DriveService owns validation, ordering and
transactions. ``folderId`` absent, null or empty always means the caller's root.
"""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File as FileParam, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.document import DocumentResponse
from ..schemas.drive import (
    DriveListing,
    FileRename,
    FileResponse,
    FolderCreate,
    FolderDeleteResponse,
    FolderRename,
    FolderResponse,
    ItemMoveRequest,
    ItemReorderRequest,
    UploadFinalizeRequest,
    UploadInitRequest,
    UploadInitResponse,
)
from ..services import DriveService, StorageService, get_storage
from .params import folder_id_query

router = APIRouter(prefix="/drive", tags=["Drive"])


def get_drive_service(
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
) -> DriveService:
    return DriveService(db, storage)


def _serialize_item(service: DriveService, item_type: str, item) -> dict:
    if item_type == "file":
        model = service.file_response(item)
    elif item_type == "doc":
        model = DocumentResponse.model_validate(item)
    else:
        model = FolderResponse.model_validate(item)
    return model.model_dump(mode="json", by_alias=True)


# --- Listing ---

@router.get("/list", response_model=DriveListing)
def list_contents(
    folder_id: Optional[str] = Depends(folder_id_query),
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    """Folders, files (with download URLs) and documents of one container."""
    return service.list_contents(auth.user_id, folder_id)


# --- Folders ---

@router.post("/folders", response_model=FolderResponse, status_code=201)
def create_folder(
    body: FolderCreate,
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.create_folder(auth.user_id, body.name, body.parent_id)


@router.put("/folder/{folder_id}", response_model=FolderResponse)
def rename_folder(
    folder_id: str,
    body: FolderRename,
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.rename_folder(auth.user_id, folder_id, body.name)


@router.delete("/folder/{folder_id}", response_model=FolderDeleteResponse)
def delete_folder(
    folder_id: str,
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    """Move a folder and its whole subtree to the trash."""
    counts = service.delete_folder(auth.user_id, folder_id)
    return FolderDeleteResponse(id=folder_id, **counts)


# --- Uploads ---

@router.post("/upload/init", response_model=UploadInitResponse, status_code=201)
def init_upload(
    body: UploadInitRequest,
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    """Create the file record and return a presigned PUT URL for the bytes."""
    db_file, upload_url = service.init_upload(
        auth.user_id, body.name, body.size, body.mime_type, body.folder_id
    )
    return UploadInitResponse(file=service.file_response(db_file), upload_url=upload_url)


@router.post("/upload/finalize", response_model=FileResponse)
def finalize_upload(
    body: UploadFinalizeRequest,
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    db_file = service.finalize_upload(auth.user_id, body.file_id)
    return service.file_response(db_file)


@router.post("/upload/{file_id}", response_model=FileResponse)
def upload_file(
    file_id: str,
    file: UploadFile = FileParam(...),
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    """Upload the bytes of an initialized file through the API instead of the presigned URL."""
    db_file = service.upload_file(auth.user_id, file_id, file.file, file.content_type)
    db_file = service.finalize_upload(auth.user_id, db_file.id)
    return service.file_response(db_file)


# --- Files ---

@router.get("/file/{file_id}")
def download_file(
    file_id: str,
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    db_file, chunks = service.open_file_stream(auth.user_id, file_id)
    return StreamingResponse(
        chunks,
        media_type=db_file.mime_type,
        headers={"Content-Disposition": f"inline; filename*=UTF-8''{quote(db_file.name)}"},
    )


@router.put("/file/{file_id}", response_model=FileResponse)
def rename_file(
    file_id: str,
    body: FileRename,
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    db_file = service.rename_file(auth.user_id, file_id, body.name)
    return service.file_response(db_file)


@router.delete("/file/{file_id}", response_model=FileResponse)
def delete_file(
    file_id: str,
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    db_file = service.delete_file(auth.user_id, file_id)
    return FileResponse.model_validate(db_file)


# --- Move / reorder ---

@router.post("/item/move")
def move_item(
    body: ItemMoveRequest,
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    """Move a file, doc or folder; it is appended after its new siblings."""
    item = service.move_item(auth.user_id, body.item_type, body.item_id, body.folder_id)
    return _serialize_item(service, body.item_type, item)


@router.post("/item/reorder")
def reorder_items(
    body: ItemReorderRequest,
    service: DriveService = Depends(get_drive_service),
    auth: AuthContext = Depends(require_auth),
):
    """Give ``orderedIds`` the sort orders 1..n, atomically."""
    items = service.reorder_items(auth.user_id, body.item_type, body.folder_id, body.ordered_ids)
    return [_serialize_item(service, body.item_type, item) for item in items]
