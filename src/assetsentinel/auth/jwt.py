"""JWT token creation and verification.

The access token carries the user id (sub), organization id and role, so
request handlers and the WebSocket handshake can scope work without a
database round trip.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from assetsentinel.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(
    user_id: int,
    org_id: int,
    role: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "org_id": org_id,
        "role": role,
        "type": "access",
        "exp": now + timedelta(minutes=expires_minutes or settings.access_token_expire_minutes),
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    if payload.get("type") != "access" or "org_id" not in payload:
        raise TokenError("Invalid token: not an access token")
    return payload
