"""Admin-only endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_admin
from ..database import get_db
from ..schemas.base import CamelModel
from ..services import admin_service

router = APIRouter(prefix="/admin", tags=["Admin"])


class UserStats(CamelModel):
    id: str
    email: str
    total_documents: int
    total_files: int


@router.get("/users/stats", response_model=List[UserStats])
def users_stats(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
):
    """Active document and file counts for every user, ordered by email."""
    return admin_service.users_stats(db)
