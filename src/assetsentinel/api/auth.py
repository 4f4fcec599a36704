"""Auth API — registration, login, current user.

- POST /auth/register → create a user inside an existing organization
- POST /auth/login → email/password → JWT access token + user
- GET /auth/me → current user info
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from assetsentinel.api.deps import get_repository
from assetsentinel.auth.dependencies import CurrentIdentity, get_current_user
from assetsentinel.auth.jwt import create_access_token
from assetsentinel.auth.password import hash_password, verify_password
from assetsentinel.db.models import User
from assetsentinel.db.repository import Repository
from assetsentinel.schemas.maintenance import ROLE_PATTERN
from assetsentinel.schemas.user import EMAIL_PATTERN, UserRead

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


# ─── Schemas ─────────────────────────────────────────────


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1, max_length=200)
    role: str = Field(..., pattern=ROLE_PATTERN)
    organization_id: int


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserRead


# ─── Routes ──────────────────────────────────────────────


@router.post("/register", response_model=UserRead, status_code=201)
async def register(body: RegisterRequest, repo: Repository = Depends(get_repository)):
    """Create a new user account."""
    if await repo.get_organization(body.organization_id) is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    if await repo.get_user_by_email(body.email):
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        organization_id=body.organization_id,
        email=body.email,
        full_name=body.full_name,
        role=body.role,
        password_hash=hash_password(body.password),
    )
    await repo.add(user)
    await repo.commit()
    logger.info("auth.registered", user_id=user.id, organization_id=user.organization_id)
    return user


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, repo: Repository = Depends(get_repository)):
    """Authenticate with email/password and get an access token."""
    user: Optional[User] = await repo.get_user_by_email(body.email)
    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(user.id, user.organization_id, user.role)
    return LoginResponse(token=token, user=UserRead.model_validate(user))


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    """Get current authenticated user info."""
    user = await repo.get_user(identity.user_id)
    if user is None or user.organization_id != identity.org_id:
        raise HTTPException(status_code=404, detail="User not found")
    return user
