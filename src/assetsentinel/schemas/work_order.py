"""Pydantic schemas for work orders.

WorkOrderRead doubles as the payload embedded in work_order_created and
work_order_status_change events, so clients see the same shape over HTTP
and over the socket.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

STATUS_PATTERN = r"^(pending|in_progress|on_hold|completed|cancelled)$"
PRIORITY_PATTERN = r"^(low|medium|high|critical)$"


class WorkOrderCreate(BaseModel):
    asset_id: int
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    status: str = Field(default="pending", pattern=STATUS_PATTERN)
    priority: str = Field(default="medium", pattern=PRIORITY_PATTERN)
    technician_id: Optional[int] = None
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    total_cost: float = Field(default=0, ge=0)
    notes: Optional[str] = None


class WorkOrderUpdate(BaseModel):
    """Partial update: only fields sent with a non-null value are applied."""
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = None
    status: Optional[str] = Field(None, pattern=STATUS_PATTERN)
    priority: Optional[str] = Field(None, pattern=PRIORITY_PATTERN)
    technician_id: Optional[int] = None
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    total_cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class WorkOrderRead(BaseModel):
    id: int
    organization_id: int
    asset_id: int
    technician_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    total_cost: float = 0
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
