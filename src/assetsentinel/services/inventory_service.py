"""Inventory service — parts CRUD, stock deduction and low-stock alerts.

The low_inventory event is edge-triggered: it fires when a change moves a
part from above its current min_threshold to at-or-below it, with both
quantities compared against the threshold after the change. Changing only
the threshold never fires. Further drops while already low stay silent
until stock is replenished above the threshold.
"""

from __future__ import annotations

from typing import Optional

import structlog

from assetsentinel.db.models import InventoryPart
from assetsentinel.db.repository import Repository
from assetsentinel.errors import NotFoundError
from assetsentinel.events.types import LowInventory
from assetsentinel.realtime.hub import Hub
from assetsentinel.schemas.inventory import (
    InventoryPartCreate,
    InventoryPartRead,
    InventoryPartUpdate,
)

logger = structlog.get_logger()


def crossed_low_threshold(old_quantity: int, new_quantity: int, threshold: int) -> bool:
    """True when a part went from above `threshold` to at-or-below it."""
    return old_quantity > threshold and new_quantity <= threshold


class InventoryService:
    """Business logic for inventory parts."""

    def __init__(self, repo: Repository, hub: Optional[Hub] = None):
        self.repo = repo
        self.hub = hub

    async def create(self, org_id: int, data: InventoryPartCreate) -> InventoryPart:
        part = InventoryPart(organization_id=org_id, **data.model_dump())
        await self.repo.add(part)
        await self.repo.commit()
        await self.repo.refresh(part)
        logger.info("inventory.created", part_id=part.id, organization_id=org_id)
        return part

    async def get(self, org_id: int, part_id: int) -> InventoryPart:
        part = await self.repo.get_inventory_part(org_id, part_id)
        if part is None:
            raise NotFoundError(f"Inventory part {part_id} not found")
        return part

    async def list(
        self, org_id: int, page: int = 1, page_size: int = 10
    ) -> tuple[list[InventoryPart], int]:
        return await self.repo.list_inventory_parts(org_id, page, page_size)

    async def list_low_stock(self, org_id: int) -> list[InventoryPart]:
        return await self.repo.list_low_stock_parts(org_id)

    async def update(
        self, org_id: int, part_id: int, changes: InventoryPartUpdate
    ) -> InventoryPart:
        part = await self.get(org_id, part_id)
        old_quantity = part.quantity
        for key, value in changes.model_dump(exclude_none=True).items():
            setattr(part, key, value)
        await self.repo.commit()
        await self.repo.refresh(part)

        if crossed_low_threshold(old_quantity, part.quantity, part.min_threshold):
            self._notify_low(part)
        return part

    async def deduct(self, org_id: int, part_id: int, quantity: int) -> InventoryPart:
        """Take `quantity` units out of stock.

        Raises InsufficientStockError (nothing changed) when short.
        """
        try:
            part = await self.repo.deduct_inventory(org_id, part_id, quantity)
        except Exception:
            await self.repo.rollback()
            raise
        if part is None:
            raise NotFoundError(f"Inventory part {part_id} not found")
        await self.repo.commit()
        await self.repo.refresh(part)
        logger.info(
            "inventory.deducted", part_id=part_id, quantity=quantity, remaining=part.quantity
        )

        if crossed_low_threshold(part.quantity + quantity, part.quantity, part.min_threshold):
            self._notify_low(part)
        return part

    async def delete(self, org_id: int, part_id: int) -> None:
        if not await self.repo.soft_delete_inventory_part(org_id, part_id):
            raise NotFoundError(f"Inventory part {part_id} not found")
        await self.repo.commit()

    def _notify_low(self, part: InventoryPart) -> None:
        logger.info(
            "inventory.low_stock",
            part_id=part.id,
            quantity=part.quantity,
            min_threshold=part.min_threshold,
        )
        if self.hub is None:
            return
        try:
            self.hub.broadcast(
                LowInventory(
                    organization_id=part.organization_id,
                    part=InventoryPartRead.model_validate(part),
                )
            )
        except Exception:
            logger.exception("inventory.notify_failed", part_id=part.id)
