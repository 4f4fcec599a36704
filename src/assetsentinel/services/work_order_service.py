"""Work order service — CRUD plus live status notifications.

Lifecycle: pending → in_progress → on_hold → completed | cancelled.
Moving to in_progress the first time stamps actual_start; moving to
completed stamps actual_end.

Events are broadcast only after the commit succeeds, and a status-change
event goes out only when the status actually changed. A broadcast failure
is logged; the caller's write has already landed.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog

from assetsentinel.db.models import WorkOrder
from assetsentinel.db.repository import Repository
from assetsentinel.errors import InvalidStatusError, NotFoundError
from assetsentinel.events.types import WorkOrderCreated, WorkOrderStatusChange
from assetsentinel.realtime.hub import Hub
from assetsentinel.schemas.work_order import WorkOrderCreate, WorkOrderRead, WorkOrderUpdate

logger = structlog.get_logger()

WORK_ORDER_STATUSES = ("pending", "in_progress", "on_hold", "completed", "cancelled")


class WorkOrderService:
    """Business logic for work orders."""

    def __init__(self, repo: Repository, hub: Optional[Hub] = None):
        self.repo = repo
        self.hub = hub

    # ─── Create ──────────────────────────────────────────

    async def create(
        self, org_id: int, data: WorkOrderCreate, created_by: Optional[int] = None
    ) -> WorkOrder:
        if data.status not in WORK_ORDER_STATUSES:
            raise InvalidStatusError(f"Unknown work order status: {data.status}")
        work_order = WorkOrder(
            organization_id=org_id,
            created_by=created_by,
            **data.model_dump(),
        )
        if work_order.status == "in_progress":
            work_order.actual_start = datetime.now(timezone.utc)
        await self.repo.add(work_order)
        await self.repo.commit()
        await self.repo.refresh(work_order)

        logger.info("work_order.created", work_order_id=work_order.id, organization_id=org_id)
        self._notify(
            WorkOrderCreated(
                organization_id=org_id,
                work_order=WorkOrderRead.model_validate(work_order),
            )
        )
        return work_order

    # ─── Read ────────────────────────────────────────────

    async def get(self, org_id: int, work_order_id: int) -> WorkOrder:
        work_order = await self.repo.get_work_order(org_id, work_order_id)
        if work_order is None:
            raise NotFoundError(f"Work order {work_order_id} not found")
        return work_order

    async def list(
        self,
        org_id: int,
        page: int = 1,
        page_size: int = 10,
        status: Optional[str] = None,
    ) -> tuple[list[WorkOrder], int]:
        return await self.repo.list_work_orders(org_id, page, page_size, status)

    # ─── Update ──────────────────────────────────────────

    async def update(
        self, org_id: int, work_order_id: int, changes: WorkOrderUpdate
    ) -> WorkOrder:
        work_order = await self.get(org_id, work_order_id)
        fields = changes.model_dump(exclude_none=True)

        new_status = fields.get("status")
        if new_status is not None and new_status not in WORK_ORDER_STATUSES:
            raise InvalidStatusError(f"Unknown work order status: {new_status}")

        old_status = work_order.status
        for key, value in fields.items():
            setattr(work_order, key, value)

        now = datetime.now(timezone.utc)
        if work_order.status != old_status:
            if work_order.status == "in_progress" and work_order.actual_start is None:
                work_order.actual_start = now
            elif work_order.status == "completed":
                work_order.actual_end = now
        work_order.updated_at = now

        await self.repo.commit()
        await self.repo.refresh(work_order)

        if work_order.status != old_status:
            logger.info(
                "work_order.status_changed",
                work_order_id=work_order.id,
                old_status=old_status,
                new_status=work_order.status,
            )
            self._notify(
                WorkOrderStatusChange(
                    organization_id=org_id,
                    work_order=WorkOrderRead.model_validate(work_order),
                    old_status=old_status,
                    new_status=work_order.status,
                )
            )
        return work_order

    # ─── Delete ──────────────────────────────────────────

    async def delete(self, org_id: int, work_order_id: int) -> None:
        if not await self.repo.delete_work_order(org_id, work_order_id):
            raise NotFoundError(f"Work order {work_order_id} not found")
        await self.repo.commit()
        logger.info("work_order.deleted", work_order_id=work_order_id, organization_id=org_id)

    def _notify(self, event) -> None:
        if self.hub is None:
            return
        try:
            self.hub.broadcast(event)
        except Exception:
            logger.exception("work_order.notify_failed", event_type=event.type)
