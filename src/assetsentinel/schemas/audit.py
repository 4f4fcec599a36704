"""Pydantic schemas for the audit trail and the dashboard summary."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AuditLogRead(BaseModel):
    id: int
    organization_id: int
    user_id: Optional[int] = None
    table_name: str
    record_id: int
    action: str
    old_values: dict
    new_values: dict
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DashboardStats(BaseModel):
    asset_count: int
    overdue_maintenance: int
    low_stock: int
    open_work_orders: int
    total_costs: float
