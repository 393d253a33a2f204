"""Authentication dependencies.

Public interface:
    ``require_auth``  -- returns AuthContext or raises 401.
    ``require_admin`` -- returns AuthContext, raises 403 if not admin.

Every drive and document endpoint depends on ``require_auth``; the
``user_id`` it yields is the owner used for all record scoping.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import settings
from .token_factory import decode_token
from ..database import get_db
from ..exceptions import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Resolved identity of the caller."""

    user_id: str
    email: str
    is_admin: bool = False


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Require a valid bearer token and return the caller's AuthContext.

    The admin flag is read from the database rather than the token, so a
    demotion takes effect without waiting for token expiry.
    """
    from ..models.user import User

    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    payload = decode_token(
        credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
    )
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    user = db.query(User).filter(User.id == payload.sub).first()
    if user is None:
        raise AuthenticationError("User not found")

    return AuthContext(user_id=user.id, email=user.email, is_admin=bool(user.is_admin))


def require_admin(
    auth: AuthContext = Depends(require_auth),
) -> AuthContext:
    """Require the authenticated user to be an admin. Raises 403 otherwise."""
    if not auth.is_admin:
        logger.warning("Admin endpoint refused", extra={"user_id": auth.user_id})
        raise ForbiddenError("Admin access required")
    return auth
