"""Pure functions for issuing and verifying bearer tokens.

Tokens are HS256 JWTs carrying the user id (``sub``), the email and the
admin flag. Encode/decode only; the auth dependency decides what a missing
or invalid token means.
"""

import hashlib
import hmac
import base64
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

_ISSUER = "opendesk"


@dataclass(frozen=True)
class TokenPayload:
    """Decoded JWT payload. Immutable."""
    sub: str
    email: str
    is_admin: bool
    exp: datetime


def create_token(
    subject: str,
    email: str,
    secret: str,
    is_admin: bool = False,
    algorithm: str = "HS256",
    expires_hours: int = 24,
) -> str:
    """Create a signed JWT.

    Args:
        subject: User id.
        email: User email, echoed back by ``/auth/me`` without a DB hit.
        secret: HMAC signing key.
        is_admin: Admin claim. Authorization re-reads the flag from the DB.
        algorithm: Only HS256 supported.
        expires_hours: Hours until expiry.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    now = time.time()
    payload = {
        "sub": subject,
        "email": email,
        "adm": bool(is_admin),
        "iat": int(now),
        "exp": int(now + expires_hours * 3600),
        "iss": _ISSUER,
    }

    header = {"alg": "HS256", "typ": "JWT"}
    segments = [
        _b64encode(json.dumps(header).encode()),
        _b64encode(json.dumps(payload).encode()),
    ]
    signing_input = b".".join(segments)
    signature = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
    segments.append(_b64encode(signature))
    return b".".join(segments).decode()


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[TokenPayload]:
    """Decode and validate a JWT.

    Returns ``None`` on any validation failure (bad signature, expired,
    wrong issuer, malformed) rather than raising.
    """
    if algorithm != "HS256":
        return None

    try:
        parts = token.encode().split(b".")
        if len(parts) != 3:
            return None

        signing_input = parts[0] + b"." + parts[1]
        expected_sig = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
        actual_sig = _b64decode(parts[2])

        if not hmac.compare_digest(expected_sig, actual_sig):
            return None

        payload = json.loads(_b64decode(parts[1]))

        if payload.get("iss") != _ISSUER:
            return None

        exp = payload.get("exp", 0)
        if time.time() > exp:
            return None

        sub = payload.get("sub")
        if not sub:
            return None

        return TokenPayload(
            sub=sub,
            email=payload.get("email", ""),
            is_admin=bool(payload.get("adm", False)),
            exp=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
    except (json.JSONDecodeError, KeyError, ValueError, IndexError, TypeError):
        return None


def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    padding = 4 - len(data) % 4
    if padding != 4:
        data += b"=" * padding
    return base64.urlsafe_b64decode(data)
