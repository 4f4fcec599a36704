"""Maintenance plan service — plan CRUD and the tasks each plan spawned."""

from __future__ import annotations

import structlog

from assetsentinel.db.models import MaintenancePlan, MaintenanceTask
from assetsentinel.db.repository import Repository
from assetsentinel.errors import NotFoundError
from assetsentinel.schemas.maintenance import MaintenancePlanCreate, MaintenancePlanUpdate

logger = structlog.get_logger()


class MaintenancePlanService:
    """Business logic for maintenance plans."""

    def __init__(self, repo: Repository):
        self.repo = repo

    async def create(self, org_id: int, data: MaintenancePlanCreate) -> MaintenancePlan:
        if await self.repo.get_asset(org_id, data.asset_id) is None:
            raise NotFoundError(f"Asset {data.asset_id} not found")
        plan = MaintenancePlan(organization_id=org_id, **data.model_dump())
        await self.repo.add(plan)
        await self.repo.commit()
        await self.repo.refresh(plan)
        logger.info(
            "maintenance_plan.created",
            plan_id=plan.id,
            asset_id=plan.asset_id,
            next_maintenance_date=str(plan.next_maintenance_date),
        )
        return plan

    async def get(self, org_id: int, plan_id: int) -> MaintenancePlan:
        plan = await self.repo.get_maintenance_plan(org_id, plan_id)
        if plan is None:
            raise NotFoundError(f"Maintenance plan {plan_id} not found")
        return plan

    async def list(
        self, org_id: int, page: int = 1, page_size: int = 10
    ) -> tuple[list[MaintenancePlan], int]:
        return await self.repo.list_maintenance_plans(org_id, page, page_size)

    async def update(
        self, org_id: int, plan_id: int, changes: MaintenancePlanUpdate
    ) -> MaintenancePlan:
        plan = await self.get(org_id, plan_id)
        for key, value in changes.model_dump(exclude_none=True).items():
            setattr(plan, key, value)
        await self.repo.commit()
        await self.repo.refresh(plan)
        return plan

    async def delete(self, org_id: int, plan_id: int) -> None:
        if not await self.repo.delete_maintenance_plan(org_id, plan_id):
            raise NotFoundError(f"Maintenance plan {plan_id} not found")
        await self.repo.commit()

    async def list_tasks(self, org_id: int, plan_id: int) -> list[MaintenanceTask]:
        await self.get(org_id, plan_id)
        return await self.repo.list_plan_tasks(org_id, plan_id)
