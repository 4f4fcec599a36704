"""Broadcast event types — one frozen model per event kind.

Producers build one of these variants and hand it to the hub; the hub
serializes it once with model_dump_json() and fans the text frame out to
every live session of event.organization_id. The `type` field is the
discriminator, so clients (and tests) can parse a frame back with
event_adapter.validate_json().
"""

from datetime import date
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from assetsentinel.schemas.inventory import InventoryPartRead
from assetsentinel.schemas.work_order import WorkOrderRead

WORK_ORDER_CREATED = "work_order_created"
WORK_ORDER_STATUS_CHANGE = "work_order_status_change"
LOW_INVENTORY = "low_inventory"
MAINTENANCE_DUE = "maintenance_due"
MAINTENANCE_OVERDUE = "maintenance_overdue"


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    organization_id: int


# ─── Work orders ─────────────────────────────────────────


class WorkOrderCreated(_Event):
    type: Literal["work_order_created"] = WORK_ORDER_CREATED
    work_order: WorkOrderRead


class WorkOrderStatusChange(_Event):
    type: Literal["work_order_status_change"] = WORK_ORDER_STATUS_CHANGE
    work_order: WorkOrderRead
    old_status: str
    new_status: str


# ─── Inventory ───────────────────────────────────────────


class LowInventory(_Event):
    type: Literal["low_inventory"] = LOW_INVENTORY
    part: InventoryPartRead


# ─── Maintenance (emitted by the scheduler) ──────────────


class MaintenanceDue(_Event):
    type: Literal["maintenance_due"] = MAINTENANCE_DUE
    plan_id: int
    task_id: int
    asset_id: int
    scheduled_date: date


class MaintenanceOverdue(_Event):
    type: Literal["maintenance_overdue"] = MAINTENANCE_OVERDUE
    task_id: int
    plan_id: int
    asset_id: int
    scheduled_date: date


BroadcastEvent = Annotated[
    Union[
        WorkOrderCreated,
        WorkOrderStatusChange,
        LowInventory,
        MaintenanceDue,
        MaintenanceOverdue,
    ],
    Field(discriminator="type"),
]

event_adapter: TypeAdapter[BroadcastEvent] = TypeAdapter(BroadcastEvent)
