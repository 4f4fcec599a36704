"""Asset API routes — the equipment registry."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from assetsentinel.api.deps import get_repository, require_admin, require_manager
from assetsentinel.auth.dependencies import CurrentIdentity, get_current_user
from assetsentinel.db.repository import Repository
from assetsentinel.errors import NotFoundError
from assetsentinel.schemas.asset import AssetCreate, AssetRead, AssetUpdate
from assetsentinel.schemas.pagination import Page, paginate
from assetsentinel.services.asset_service import AssetService

router = APIRouter(prefix="/assets")


def _svc(repo: Repository = Depends(get_repository)) -> AssetService:
    return AssetService(repo)


@router.post("", response_model=AssetRead, status_code=201)
async def create_asset(
    body: AssetCreate,
    identity: CurrentIdentity = Depends(require_manager),
    svc: AssetService = Depends(_svc),
):
    return await svc.create(identity.org_id, body)


@router.get("", response_model=Page[AssetRead])
async def list_assets(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None, description="Filter by status"),
    category: Optional[str] = Query(None, description="Filter by category"),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AssetService = Depends(_svc),
):
    items, total = await svc.list(identity.org_id, page, page_size, status, category)
    return paginate(AssetRead, items, total, page, page_size)


@router.get("/{asset_id}", response_model=AssetRead)
async def get_asset(
    asset_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AssetService = Depends(_svc),
):
    try:
        return await svc.get(identity.org_id, asset_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{asset_id}", response_model=AssetRead)
async def update_asset(
    asset_id: int,
    body: AssetUpdate,
    identity: CurrentIdentity = Depends(require_manager),
    svc: AssetService = Depends(_svc),
):
    try:
        return await svc.update(identity.org_id, asset_id, body)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{asset_id}", status_code=204)
async def delete_asset(
    asset_id: int,
    identity: CurrentIdentity = Depends(require_admin),
    svc: AssetService = Depends(_svc),
):
    try:
        await svc.delete(identity.org_id, asset_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
