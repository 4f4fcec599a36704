"""FastAPI auth dependencies.

Used as Depends() in route handlers to extract the caller's identity from
the Bearer token, and to gate endpoints on role.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from assetsentinel.auth.jwt import TokenError, verify_token


class CurrentIdentity:
    """The authenticated user making the request.

    All downstream code uses org_id to scope queries.
    """

    def __init__(self, user_id: int, org_id: int, role: str):
        self.user_id = user_id
        self.org_id = org_id
        self.role = role

    def __repr__(self) -> str:
        return f"<CurrentIdentity user={self.user_id} org={self.org_id} role={self.role}>"


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no auth)."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = verify_token(authorization[7:])
        return CurrentIdentity(
            user_id=int(payload["sub"]),
            org_id=int(payload["org_id"]),
            role=payload.get("role", "technician"),
        )
    except (TokenError, KeyError, ValueError) as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_role(*roles: str):
    """Dependency factory: 403 unless the caller has one of `roles`."""

    async def _check(identity: CurrentIdentity = Depends(get_current_user)) -> CurrentIdentity:
        if identity.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return identity

    return _check
