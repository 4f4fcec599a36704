"""Pydantic schemas for maintenance plans and the tasks they spawn."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

ROLE_PATTERN = r"^(admin|maintenance_manager|technician|viewer)$"


class MaintenancePlanCreate(BaseModel):
    asset_id: int
    frequency_days: int = Field(..., ge=1)
    next_maintenance_date: date
    estimated_duration_hours: Optional[float] = Field(None, ge=0)
    assigned_role: Optional[str] = Field(None, pattern=ROLE_PATTERN)
    last_maintenance_date: Optional[date] = None


class MaintenancePlanUpdate(BaseModel):
    """Partial update: only fields sent with a non-null value are applied."""
    frequency_days: Optional[int] = Field(None, ge=1)
    next_maintenance_date: Optional[date] = None
    estimated_duration_hours: Optional[float] = Field(None, ge=0)
    assigned_role: Optional[str] = Field(None, pattern=ROLE_PATTERN)
    last_maintenance_date: Optional[date] = None


class MaintenancePlanRead(BaseModel):
    id: int
    organization_id: int
    asset_id: int
    frequency_days: int
    estimated_duration_hours: Optional[float] = None
    assigned_role: Optional[str] = None
    last_maintenance_date: Optional[date] = None
    next_maintenance_date: date
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MaintenanceTaskRead(BaseModel):
    id: int
    organization_id: int
    maintenance_plan_id: int
    asset_id: int
    scheduled_date: date
    status: str
    completed_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
