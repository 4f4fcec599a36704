"""User admin routes — members of the caller's organization (admin only)."""

from fastapi import APIRouter, Depends, HTTPException

from assetsentinel.api.deps import get_repository, require_admin
from assetsentinel.auth.dependencies import CurrentIdentity
from assetsentinel.db.repository import Repository
from assetsentinel.errors import ConflictError, NotFoundError
from assetsentinel.schemas.user import UserCreate, UserRead, UserUpdate
from assetsentinel.services.admin_service import AdminService

router = APIRouter(prefix="/users")


def _svc(
    identity: CurrentIdentity = Depends(require_admin),
    repo: Repository = Depends(get_repository),
) -> AdminService:
    return AdminService(repo, actor_id=identity.user_id)


@router.get("", response_model=list[UserRead])
async def list_users(
    identity: CurrentIdentity = Depends(require_admin),
    svc: AdminService = Depends(_svc),
):
    return await svc.list_users(identity.org_id)


@router.post("", response_model=UserRead, status_code=201)
async def create_user(
    body: UserCreate,
    identity: CurrentIdentity = Depends(require_admin),
    svc: AdminService = Depends(_svc),
):
    try:
        return await svc.create_user(identity.org_id, body)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: int,
    identity: CurrentIdentity = Depends(require_admin),
    svc: AdminService = Depends(_svc),
):
    try:
        return await svc.get_user(identity.org_id, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    body: UserUpdate,
    identity: CurrentIdentity = Depends(require_admin),
    svc: AdminService = Depends(_svc),
):
    try:
        return await svc.update_user(identity.org_id, user_id, body)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    identity: CurrentIdentity = Depends(require_admin),
    svc: AdminService = Depends(_svc),
):
    try:
        await svc.delete_user(identity.org_id, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
