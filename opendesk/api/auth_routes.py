"""Authentication API endpoints.

    POST /auth/register  -- create account; the first account becomes admin
    POST /auth/login     -- authenticate and receive a bearer token
    GET  /auth/me        -- current user
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..core.config import settings
from ..core.token_factory import create_token
from ..database import get_db
from ..exceptions import AuthenticationError
from ..schemas.base import CamelModel
from ..services import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


class RegisterRequest(CamelModel):
    email: str = Field(..., description="Email address")
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")

    model_config = {
        "json_schema_extra": {
            "examples": [{"email": "alice@example.com", "password": "securepass"}]
        }
    }


class LoginRequest(CamelModel):
    email: str
    password: str


class UserResponse(CamelModel):
    id: str
    email: str
    is_admin: bool
    created_at: Optional[datetime] = None


class RegisterResponse(CamelModel):
    user: UserResponse
    admin_warning: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


@router.post("/register", response_model=RegisterResponse, response_model_exclude_none=True, status_code=201)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    user, admin_warning = auth_service.register_user(db, body.email, body.password)
    return RegisterResponse(user=UserResponse.model_validate(user), admin_warning=admin_warning)


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = auth_service.authenticate(db, body.email, body.password)
    token = create_token(
        subject=user.id,
        email=user.email,
        secret=settings.jwt_secret_key,
        is_admin=bool(user.is_admin),
        algorithm=settings.jwt_algorithm,
        expires_hours=settings.jwt_expires_hours,
    )
    logger.info("User logged in", extra={"user_id": user.id})
    return TokenResponse(access_token=token)


@router.get("/me", response_model=UserResponse)
def me(auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    user = auth_service.get_user_by_id(db, auth.user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return user
