"""Pydantic schemas for inventory parts."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class InventoryPartCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    sku: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(default=0, ge=0)
    min_threshold: int = Field(default=0, ge=0)
    cost_per_unit: float = Field(default=0, ge=0)
    location: Optional[str] = None


class InventoryPartUpdate(BaseModel):
    """Partial update: only fields sent with a non-null value are applied."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    sku: Optional[str] = Field(None, min_length=1, max_length=100)
    quantity: Optional[int] = Field(None, ge=0)
    min_threshold: Optional[int] = Field(None, ge=0)
    cost_per_unit: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None


class InventoryDeduct(BaseModel):
    quantity: int = Field(..., gt=0)


class InventoryPartRead(BaseModel):
    id: int
    organization_id: int
    name: str
    sku: str
    quantity: int
    min_threshold: int
    cost_per_unit: float = 0
    location: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
