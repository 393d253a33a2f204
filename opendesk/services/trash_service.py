"""Trash reaper: physically remove items soft-deleted longer than the retention window.

Runs at API startup and periodically from ``opendesk.worker``. File blobs
are removed before their rows; a file whose blob cannot be removed keeps
its row so the next sweep retries it.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from sqlalchemy.orm import Session

from ..exceptions import StorageError
from ..repositories import DocumentRepository, FileRepository, FolderRepository
from .storage_service import StorageService

logger = logging.getLogger(__name__)


def purge_expired_trash(
    db: Session,
    storage: StorageService,
    retention_days: int,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """Delete rows (and file blobs) whose ``deleted_at`` predates the retention window.

    Returns the number of purged rows per kind plus the number of files
    whose blob removal failed.
    """
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=retention_days)
    file_repo = FileRepository(db)
    doc_repo = DocumentRepository(db)
    folder_repo = FolderRepository(db)

    removable_files = []
    failed = 0
    for db_file in file_repo.expired(cutoff):
        try:
            storage.remove_object(db_file.key)
        except StorageError as e:
            failed += 1
            logger.warning(
                "Keeping file row, blob removal failed",
                extra={"file_id": db_file.id, "error": e.message},
            )
            continue
        removable_files.append(db_file.id)

    try:
        result = {
            "files": file_repo.purge(removable_files),
            "documents": doc_repo.purge([d.id for d in doc_repo.expired(cutoff)]),
            "folders": folder_repo.purge([f.id for f in folder_repo.expired(cutoff)]),
            "failed_files": failed,
        }
        db.commit()
    except Exception:
        db.rollback()
        raise

    if any(result.values()):
        logger.info("Trash purged", extra=result)
    return result
