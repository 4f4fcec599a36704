"""Repository — tenant-scoped queries over one AsyncSession.

Every read is filtered by organization_id. Writes stage changes on the
session; callers decide when to commit(), so a service (or the scheduler)
can group "create task + advance plan" into one transaction.

open_repository() is the entry point for background work: it opens a fresh
session per scope, so a failed write in one scope never poisons another.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import AsyncIterator, Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assetsentinel.db.engine import async_session_factory
from assetsentinel.db.models import (
    OPEN_TASK_STATUSES,
    OPEN_WORK_ORDER_STATUSES,
    TASK_OVERDUE,
    Asset,
    AuditLog,
    InventoryPart,
    MaintenancePlan,
    MaintenanceTask,
    Organization,
    User,
    WorkOrder,
)
from assetsentinel.errors import InsufficientStockError


def _offset(page: int, page_size: int) -> int:
    return (max(page, 1) - 1) * page_size


class Repository:
    """Durable store used by the services and the maintenance scheduler."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Transactions ────────────────────────────────────

    async def add(self, obj):
        """Stage a new row and flush to get its generated ID."""
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    async def refresh(self, obj) -> None:
        await self.db.refresh(obj)

    async def _paginate(self, query, page: int, page_size: int):
        total = await self.db.scalar(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
        result = await self.db.execute(
            query.limit(page_size).offset(_offset(page, page_size))
        )
        return list(result.scalars().all()), total or 0

    # ─── Organizations and users ─────────────────────────

    async def list_organizations(self) -> list[Organization]:
        result = await self.db.execute(select(Organization).order_by(Organization.id))
        return list(result.scalars().all())

    async def get_organization(self, org_id: int) -> Optional[Organization]:
        return await self.db.get(Organization, org_id)

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def list_users(self, org_id: int) -> list[User]:
        result = await self.db.execute(
            select(User).where(User.organization_id == org_id).order_by(User.id)
        )
        return list(result.scalars().all())

    async def get_organization_user(self, org_id: int, user_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.organization_id == org_id)
        )
        return result.scalars().first()

    async def delete_user(self, org_id: int, user_id: int) -> bool:
        user = await self.get_organization_user(org_id, user_id)
        if user is None:
            return False
        await self.db.delete(user)
        await self.db.flush()
        return True

    # ─── Audit trail ─────────────────────────────────────

    async def add_audit_log(self, entry: AuditLog) -> AuditLog:
        return await self.add(entry)

    async def list_audit_logs(
        self,
        org_id: int,
        page: int = 1,
        page_size: int = 20,
        table_name: Optional[str] = None,
    ) -> tuple[list[AuditLog], int]:
        """Newest first, optionally narrowed to one table."""
        query = (
            select(AuditLog)
            .where(AuditLog.organization_id == org_id)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        )
        if table_name:
            query = query.where(AuditLog.table_name == table_name)
        return await self._paginate(query, page, page_size)

    # ─── Dashboard ───────────────────────────────────────

    async def get_dashboard_stats(self, org_id: int, today: date) -> dict:
        """Headline counts for one organization."""
        asset_count = await self.db.scalar(
            select(func.count(Asset.id)).where(
                Asset.organization_id == org_id, Asset.deleted_at.is_(None)
            )
        )
        overdue = await self.db.scalar(
            select(func.count(MaintenanceTask.id)).where(
                MaintenanceTask.organization_id == org_id,
                or_(
                    MaintenanceTask.status == TASK_OVERDUE,
                    and_(
                        MaintenanceTask.status.in_(OPEN_TASK_STATUSES),
                        MaintenanceTask.scheduled_date < today,
                    ),
                ),
            )
        )
        low_stock = await self.db.scalar(
            select(func.count(InventoryPart.id)).where(
                InventoryPart.organization_id == org_id,
                InventoryPart.quantity <= InventoryPart.min_threshold,
                InventoryPart.deleted_at.is_(None),
            )
        )
        open_work_orders = await self.db.scalar(
            select(func.count(WorkOrder.id)).where(
                WorkOrder.organization_id == org_id,
                WorkOrder.status.in_(OPEN_WORK_ORDER_STATUSES),
            )
        )
        total_costs = await self.db.scalar(
            select(func.coalesce(func.sum(WorkOrder.total_cost), 0)).where(
                WorkOrder.organization_id == org_id
            )
        )
        return {
            "asset_count": asset_count or 0,
            "overdue_maintenance": overdue or 0,
            "low_stock": low_stock or 0,
            "open_work_orders": open_work_orders or 0,
            "total_costs": float(total_costs or 0),
        }

    # ─── Assets ──────────────────────────────────────────

    async def get_asset(self, org_id: int, asset_id: int) -> Optional[Asset]:
        result = await self.db.execute(
            select(Asset).where(
                Asset.id == asset_id,
                Asset.organization_id == org_id,
                Asset.deleted_at.is_(None),
            )
        )
        return result.scalars().first()

    async def list_assets(
        self,
        org_id: int,
        page: int = 1,
        page_size: int = 10,
        status: Optional[str] = None,
        category: Optional[str] = None,
    ) -> tuple[list[Asset], int]:
        query = (
            select(Asset)
            .where(Asset.organization_id == org_id, Asset.deleted_at.is_(None))
            .order_by(Asset.created_at.desc(), Asset.id.desc())
        )
        if status:
            query = query.where(Asset.status == status)
        if category:
            query = query.where(Asset.category == category)
        return await self._paginate(query, page, page_size)

    async def soft_delete_asset(self, org_id: int, asset_id: int) -> bool:
        result = await self.db.execute(
            update(Asset)
            .where(
                Asset.id == asset_id,
                Asset.organization_id == org_id,
                Asset.deleted_at.is_(None),
            )
            .values(deleted_at=datetime.now(timezone.utc))
        )
        return result.rowcount > 0

    # ─── Maintenance plans ───────────────────────────────

    async def get_maintenance_plan(self, org_id: int, plan_id: int) -> Optional[MaintenancePlan]:
        result = await self.db.execute(
            select(MaintenancePlan).where(
                MaintenancePlan.id == plan_id,
                MaintenancePlan.organization_id == org_id,
            )
        )
        return result.scalars().first()

    async def list_maintenance_plans(
        self, org_id: int, page: int = 1, page_size: int = 10
    ) -> tuple[list[MaintenancePlan], int]:
        query = (
            select(MaintenancePlan)
            .where(MaintenancePlan.organization_id == org_id)
            .order_by(MaintenancePlan.next_maintenance_date.asc(), MaintenancePlan.id)
        )
        return await self._paginate(query, page, page_size)

    async def delete_maintenance_plan(self, org_id: int, plan_id: int) -> bool:
        plan = await self.get_maintenance_plan(org_id, plan_id)
        if plan is None:
            return False
        await self.db.delete(plan)
        await self.db.flush()
        return True

    async def get_maintenance_plans_due(self, org_id: int, today: date) -> list[MaintenancePlan]:
        """Plans whose next_maintenance_date has arrived (<= today)."""
        result = await self.db.execute(
            select(MaintenancePlan)
            .where(
                MaintenancePlan.organization_id == org_id,
                MaintenancePlan.next_maintenance_date <= today,
            )
            .order_by(MaintenancePlan.next_maintenance_date, MaintenancePlan.id)
        )
        return list(result.scalars().all())

    async def advance_maintenance_plan(
        self, org_id: int, plan_id: int, next_date: date
    ) -> bool:
        """Move a plan's next_maintenance_date forward."""
        result = await self.db.execute(
            update(MaintenancePlan)
            .where(
                MaintenancePlan.id == plan_id,
                MaintenancePlan.organization_id == org_id,
            )
            .values(next_maintenance_date=next_date, updated_at=datetime.now(timezone.utc))
        )
        return result.rowcount > 0

    # ─── Maintenance tasks ───────────────────────────────

    async def create_maintenance_task(self, task: MaintenanceTask) -> MaintenanceTask:
        return await self.add(task)

    async def get_overdue_maintenance_tasks(
        self, org_id: int, today: date
    ) -> list[MaintenanceTask]:
        """Open tasks (pending / in_progress) scheduled before today."""
        result = await self.db.execute(
            select(MaintenanceTask)
            .where(
                MaintenanceTask.organization_id == org_id,
                MaintenanceTask.scheduled_date < today,
                MaintenanceTask.status.in_(OPEN_TASK_STATUSES),
            )
            .order_by(MaintenanceTask.scheduled_date, MaintenanceTask.id)
        )
        return list(result.scalars().all())

    async def update_maintenance_task(self, task: MaintenanceTask) -> bool:
        """Persist status / completion fields of a task, keyed by org + ID."""
        result = await self.db.execute(
            update(MaintenanceTask)
            .where(
                MaintenanceTask.id == task.id,
                MaintenanceTask.organization_id == task.organization_id,
            )
            .values(
                status=task.status,
                completed_date=task.completed_date,
                notes=task.notes,
                updated_at=datetime.now(timezone.utc),
            )
        )
        return result.rowcount > 0

    async def list_plan_tasks(self, org_id: int, plan_id: int) -> list[MaintenanceTask]:
        result = await self.db.execute(
            select(MaintenanceTask)
            .where(
                MaintenanceTask.organization_id == org_id,
                MaintenanceTask.maintenance_plan_id == plan_id,
            )
            .order_by(MaintenanceTask.scheduled_date.desc(), MaintenanceTask.id.desc())
        )
        return list(result.scalars().all())

    # ─── Inventory ───────────────────────────────────────

    async def get_inventory_part(self, org_id: int, part_id: int) -> Optional[InventoryPart]:
        result = await self.db.execute(
            select(InventoryPart).where(
                InventoryPart.id == part_id,
                InventoryPart.organization_id == org_id,
                InventoryPart.deleted_at.is_(None),
            )
        )
        return result.scalars().first()

    async def list_inventory_parts(
        self, org_id: int, page: int = 1, page_size: int = 10
    ) -> tuple[list[InventoryPart], int]:
        query = (
            select(InventoryPart)
            .where(
                InventoryPart.organization_id == org_id,
                InventoryPart.deleted_at.is_(None),
            )
            .order_by(InventoryPart.name.asc(), InventoryPart.id)
        )
        return await self._paginate(query, page, page_size)

    async def list_low_stock_parts(self, org_id: int) -> list[InventoryPart]:
        result = await self.db.execute(
            select(InventoryPart)
            .where(
                InventoryPart.organization_id == org_id,
                InventoryPart.quantity <= InventoryPart.min_threshold,
                InventoryPart.deleted_at.is_(None),
            )
            .order_by(InventoryPart.name.asc())
        )
        return list(result.scalars().all())

    async def deduct_inventory(
        self, org_id: int, part_id: int, quantity: int
    ) -> Optional[InventoryPart]:
        """Decrement stock under a row lock. Returns the updated part.

        Raises InsufficientStockError when fewer than `quantity` units are
        on hand; nothing is changed in that case.
        """
        result = await self.db.execute(
            select(InventoryPart)
            .where(
                InventoryPart.id == part_id,
                InventoryPart.organization_id == org_id,
                InventoryPart.deleted_at.is_(None),
            )
            .with_for_update()
        )
        part = result.scalars().first()
        if part is None:
            return None
        if part.quantity < quantity:
            raise InsufficientStockError(
                f"Insufficient stock for part {part_id}: "
                f"{part.quantity} on hand, {quantity} requested"
            )
        part.quantity -= quantity
        await self.db.flush()
        return part

    async def soft_delete_inventory_part(self, org_id: int, part_id: int) -> bool:
        result = await self.db.execute(
            update(InventoryPart)
            .where(
                InventoryPart.id == part_id,
                InventoryPart.organization_id == org_id,
                InventoryPart.deleted_at.is_(None),
            )
            .values(deleted_at=datetime.now(timezone.utc))
        )
        return result.rowcount > 0

    # ─── Work orders ─────────────────────────────────────

    async def get_work_order(self, org_id: int, work_order_id: int) -> Optional[WorkOrder]:
        result = await self.db.execute(
            select(WorkOrder).where(
                WorkOrder.id == work_order_id,
                WorkOrder.organization_id == org_id,
            )
        )
        return result.scalars().first()

    async def list_work_orders(
        self,
        org_id: int,
        page: int = 1,
        page_size: int = 10,
        status: Optional[str] = None,
    ) -> tuple[list[WorkOrder], int]:
        query = (
            select(WorkOrder)
            .where(WorkOrder.organization_id == org_id)
            .order_by(WorkOrder.created_at.desc(), WorkOrder.id.desc())
        )
        if status:
            query = query.where(WorkOrder.status == status)
        return await self._paginate(query, page, page_size)

    async def delete_work_order(self, org_id: int, work_order_id: int) -> bool:
        work_order = await self.get_work_order(org_id, work_order_id)
        if work_order is None:
            return False
        await self.db.delete(work_order)
        await self.db.flush()
        return True


@asynccontextmanager
async def open_repository() -> AsyncIterator[Repository]:
    """Open a repository on a fresh session (for background work and CLI)."""
    async with async_session_factory() as session:
        yield Repository(session)
