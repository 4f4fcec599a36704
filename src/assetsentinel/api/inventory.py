"""Inventory API routes.

Key patterns:
- /inventory/low-stock is declared before /inventory/{part_id}
- POST /inventory/{part_id}/deduct answers 409 when stock is short
- quantity changes that cross min_threshold notify live sessions
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from assetsentinel.api.deps import get_event_hub, get_repository, require_admin, require_manager
from assetsentinel.auth.dependencies import CurrentIdentity, get_current_user
from assetsentinel.db.repository import Repository
from assetsentinel.errors import InsufficientStockError, NotFoundError
from assetsentinel.realtime.hub import Hub
from assetsentinel.schemas.inventory import (
    InventoryDeduct,
    InventoryPartCreate,
    InventoryPartRead,
    InventoryPartUpdate,
)
from assetsentinel.schemas.pagination import Page, paginate
from assetsentinel.services.inventory_service import InventoryService

router = APIRouter(prefix="/inventory")


def _svc(
    repo: Repository = Depends(get_repository),
    hub: Optional[Hub] = Depends(get_event_hub),
) -> InventoryService:
    return InventoryService(repo, hub)


@router.post("", response_model=InventoryPartRead, status_code=201)
async def create_part(
    body: InventoryPartCreate,
    identity: CurrentIdentity = Depends(require_manager),
    svc: InventoryService = Depends(_svc),
):
    return await svc.create(identity.org_id, body)


@router.get("", response_model=Page[InventoryPartRead])
async def list_parts(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: InventoryService = Depends(_svc),
):
    items, total = await svc.list(identity.org_id, page, page_size)
    return paginate(InventoryPartRead, items, total, page, page_size)


@router.get("/low-stock", response_model=list[InventoryPartRead])
async def list_low_stock(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: InventoryService = Depends(_svc),
):
    """Parts at or below their minimum threshold."""
    return await svc.list_low_stock(identity.org_id)


@router.get("/{part_id}", response_model=InventoryPartRead)
async def get_part(
    part_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: InventoryService = Depends(_svc),
):
    try:
        return await svc.get(identity.org_id, part_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{part_id}", response_model=InventoryPartRead)
async def update_part(
    part_id: int,
    body: InventoryPartUpdate,
    identity: CurrentIdentity = Depends(require_manager),
    svc: InventoryService = Depends(_svc),
):
    try:
        return await svc.update(identity.org_id, part_id, body)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{part_id}/deduct", response_model=InventoryPartRead)
async def deduct_part(
    part_id: int,
    body: InventoryDeduct,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: InventoryService = Depends(_svc),
):
    """Take parts out of stock (e.g. consumed by a work order)."""
    try:
        return await svc.deduct(identity.org_id, part_id, body.quantity)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientStockError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{part_id}", status_code=204)
async def delete_part(
    part_id: int,
    identity: CurrentIdentity = Depends(require_admin),
    svc: InventoryService = Depends(_svc),
):
    try:
        await svc.delete(identity.org_id, part_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
