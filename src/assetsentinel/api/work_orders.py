"""Work order API routes.

Creating a work order and changing its status both notify the
organization's live sessions (work_order_created /
work_order_status_change). Any member may update a work order so
technicians can move their own jobs along.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from assetsentinel.api.deps import get_event_hub, get_repository, require_admin, require_manager
from assetsentinel.auth.dependencies import CurrentIdentity, get_current_user
from assetsentinel.db.repository import Repository
from assetsentinel.errors import InvalidStatusError, NotFoundError
from assetsentinel.realtime.hub import Hub
from assetsentinel.schemas.pagination import Page, paginate
from assetsentinel.schemas.work_order import WorkOrderCreate, WorkOrderRead, WorkOrderUpdate
from assetsentinel.services.work_order_service import WorkOrderService

router = APIRouter(prefix="/work-orders")


def _svc(
    repo: Repository = Depends(get_repository),
    hub: Optional[Hub] = Depends(get_event_hub),
) -> WorkOrderService:
    return WorkOrderService(repo, hub)


@router.post("", response_model=WorkOrderRead, status_code=201)
async def create_work_order(
    body: WorkOrderCreate,
    identity: CurrentIdentity = Depends(require_manager),
    svc: WorkOrderService = Depends(_svc),
):
    try:
        return await svc.create(identity.org_id, body, created_by=identity.user_id)
    except InvalidStatusError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("", response_model=Page[WorkOrderRead])
async def list_work_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None, description="Filter by status"),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: WorkOrderService = Depends(_svc),
):
    items, total = await svc.list(identity.org_id, page, page_size, status)
    return paginate(WorkOrderRead, items, total, page, page_size)


@router.get("/{work_order_id}", response_model=WorkOrderRead)
async def get_work_order(
    work_order_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: WorkOrderService = Depends(_svc),
):
    try:
        return await svc.get(identity.org_id, work_order_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{work_order_id}", response_model=WorkOrderRead)
async def update_work_order(
    work_order_id: int,
    body: WorkOrderUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: WorkOrderService = Depends(_svc),
):
    try:
        return await svc.update(identity.org_id, work_order_id, body)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/{work_order_id}", status_code=204)
async def delete_work_order(
    work_order_id: int,
    identity: CurrentIdentity = Depends(require_admin),
    svc: WorkOrderService = Depends(_svc),
):
    try:
        await svc.delete(identity.org_id, work_order_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
