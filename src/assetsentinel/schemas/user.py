"""Pydantic schemas for organization members.

UserRead never carries the password hash; it is shared by the auth and
user-administration routes.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from assetsentinel.schemas.maintenance import ROLE_PATTERN

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+$"


class UserCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1, max_length=200)
    role: str = Field(default="viewer", pattern=ROLE_PATTERN)


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    role: Optional[str] = Field(None, pattern=ROLE_PATTERN)
    password: Optional[str] = Field(None, min_length=6)


class UserRead(BaseModel):
    id: int
    email: str
    full_name: str
    role: str
    organization_id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
