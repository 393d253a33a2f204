"""Authentication service: registration, login and user lookup.

All password operations use bcrypt via passlib. Passwords are never stored
or logged in plaintext. Endpoints are thin wrappers around these functions.
"""

import logging
from typing import Optional, Tuple

from passlib.hash import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import lock_table_for_write
from ..exceptions import AuthenticationError, ConflictError, ValidationError
from ..models.user import User

logger = logging.getLogger(__name__)

# NIST SP 800-63B recommends at least 8 characters.
MIN_PASSWORD_LENGTH = 8

ADMIN_WARNING = (
    "This is the first account on this server and has been granted admin "
    "privileges. Keep its credentials safe."
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def register_user(db: Session, email: str, password: str) -> Tuple[User, Optional[str]]:
    """Create a new user account.

    The first user registered becomes admin. The users table is write-locked
    before the existence check and the count, so concurrent registrations
    run one at a time and exactly one of them sees an empty table.

    Returns ``(user, admin_warning)`` where the warning is set only for the
    bootstrap admin. Raises ConflictError if the email is already taken.
    """
    email = normalize_email(email)
    if not email or "@" not in email:
        raise ValidationError("Valid email address required", field="email")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )
    password_hash = bcrypt.hash(password)

    try:
        lock_table_for_write(db, User.__tablename__)
        if db.query(User).filter(User.email == email).first() is not None:
            raise ConflictError("Email already registered", field="email")
        is_first_user = db.query(User.id).count() == 0

        user = User(email=email, password_hash=password_hash, is_admin=is_first_user)
        db.add(user)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("Email already registered", field="email") from e
    except Exception:
        db.rollback()
        raise
    db.refresh(user)

    if is_first_user:
        logger.warning("First user registered as admin", extra={"user_id": user.id})
        return user, ADMIN_WARNING
    logger.info("User registered", extra={"user_id": user.id})
    return user, None


def authenticate(db: Session, email: str, password: str) -> User:
    """Validate credentials and return the user.

    Raises AuthenticationError on unknown email or wrong password, with the
    same message for both.
    """
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if user is None or not bcrypt.verify(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")
    return user


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()
