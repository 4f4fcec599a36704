"""Pydantic schemas for assets."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

STATUS_PATTERN = r"^(active|inactive|under_maintenance|retired)$"


class AssetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    serial_number: Optional[str] = None
    installation_date: Optional[date] = None
    location: Optional[str] = None
    purchase_cost: float = Field(default=0, ge=0)
    warranty_expiry: Optional[date] = None
    status: str = Field(default="active", pattern=STATUS_PATTERN)


class AssetUpdate(BaseModel):
    """Partial update: only fields sent with a non-null value are applied."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    serial_number: Optional[str] = None
    installation_date: Optional[date] = None
    location: Optional[str] = None
    purchase_cost: Optional[float] = Field(None, ge=0)
    warranty_expiry: Optional[date] = None
    status: Optional[str] = Field(None, pattern=STATUS_PATTERN)


class AssetRead(BaseModel):
    id: int
    organization_id: int
    name: str
    category: str
    serial_number: Optional[str] = None
    installation_date: Optional[date] = None
    location: Optional[str] = None
    purchase_cost: float = 0
    warranty_expiry: Optional[date] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
