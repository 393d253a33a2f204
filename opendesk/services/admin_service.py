"""Admin aggregates over all users."""

from typing import List

from sqlalchemy.orm import Session

from ..models.user import User
from ..repositories import DocumentRepository, FileRepository


def users_stats(db: Session) -> List[dict]:
    """Per-user counts of active documents and files, ordered by email."""
    doc_counts = DocumentRepository(db).count_by_owner()
    file_counts = FileRepository(db).count_by_owner()
    users = db.query(User).order_by(User.email).all()
    return [
        {
            "id": user.id,
            "email": user.email,
            "total_documents": doc_counts.get(user.id, 0),
            "total_files": file_counts.get(user.id, 0),
        }
        for user in users
    ]
