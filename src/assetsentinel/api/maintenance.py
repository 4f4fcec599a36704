"""Maintenance plan API routes.

Plans only describe the cadence; the scheduler turns due plans into tasks.
GET /maintenance-plans/{id}/tasks shows what a plan has spawned so far.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from assetsentinel.api.deps import get_repository, require_admin, require_manager
from assetsentinel.auth.dependencies import CurrentIdentity, get_current_user
from assetsentinel.db.repository import Repository
from assetsentinel.errors import NotFoundError
from assetsentinel.schemas.maintenance import (
    MaintenancePlanCreate,
    MaintenancePlanRead,
    MaintenancePlanUpdate,
    MaintenanceTaskRead,
)
from assetsentinel.schemas.pagination import Page, paginate
from assetsentinel.services.maintenance_service import MaintenancePlanService

router = APIRouter(prefix="/maintenance-plans")


def _svc(repo: Repository = Depends(get_repository)) -> MaintenancePlanService:
    return MaintenancePlanService(repo)


@router.post("", response_model=MaintenancePlanRead, status_code=201)
async def create_plan(
    body: MaintenancePlanCreate,
    identity: CurrentIdentity = Depends(require_manager),
    svc: MaintenancePlanService = Depends(_svc),
):
    try:
        return await svc.create(identity.org_id, body)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("", response_model=Page[MaintenancePlanRead])
async def list_plans(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MaintenancePlanService = Depends(_svc),
):
    items, total = await svc.list(identity.org_id, page, page_size)
    return paginate(MaintenancePlanRead, items, total, page, page_size)


@router.get("/{plan_id}", response_model=MaintenancePlanRead)
async def get_plan(
    plan_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MaintenancePlanService = Depends(_svc),
):
    try:
        return await svc.get(identity.org_id, plan_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{plan_id}/tasks", response_model=list[MaintenanceTaskRead])
async def list_plan_tasks(
    plan_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: MaintenancePlanService = Depends(_svc),
):
    try:
        return await svc.list_tasks(identity.org_id, plan_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{plan_id}", response_model=MaintenancePlanRead)
async def update_plan(
    plan_id: int,
    body: MaintenancePlanUpdate,
    identity: CurrentIdentity = Depends(require_manager),
    svc: MaintenancePlanService = Depends(_svc),
):
    try:
        return await svc.update(identity.org_id, plan_id, body)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{plan_id}", status_code=204)
async def delete_plan(
    plan_id: int,
    identity: CurrentIdentity = Depends(require_admin),
    svc: MaintenancePlanService = Depends(_svc),
):
    try:
        await svc.delete(identity.org_id, plan_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
