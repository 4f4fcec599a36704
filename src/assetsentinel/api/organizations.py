"""Organization admin routes (admin role only).

Admins may list and create organizations, which is how a new tenant is
bootstrapped over HTTP. Reading or renaming is limited to the caller's
own organization; any other ID answers 404, as if it did not exist.
"""

from fastapi import APIRouter, Depends, HTTPException

from assetsentinel.api.deps import get_repository, require_admin
from assetsentinel.auth.dependencies import CurrentIdentity
from assetsentinel.db.repository import Repository
from assetsentinel.errors import NotFoundError
from assetsentinel.schemas.organization import (
    OrganizationCreate,
    OrganizationRead,
    OrganizationUpdate,
)
from assetsentinel.services.admin_service import AdminService

router = APIRouter(prefix="/organizations")


def _svc(
    identity: CurrentIdentity = Depends(require_admin),
    repo: Repository = Depends(get_repository),
) -> AdminService:
    return AdminService(repo, actor_id=identity.user_id)


def _own(org_id: int, identity: CurrentIdentity) -> None:
    if org_id != identity.org_id:
        raise HTTPException(status_code=404, detail=f"Organization {org_id} not found")


@router.get("", response_model=list[OrganizationRead])
async def list_organizations(svc: AdminService = Depends(_svc)):
    return await svc.list_organizations()


@router.post("", response_model=OrganizationRead, status_code=201)
async def create_organization(body: OrganizationCreate, svc: AdminService = Depends(_svc)):
    return await svc.create_organization(body)


@router.get("/{org_id}", response_model=OrganizationRead)
async def get_organization(
    org_id: int,
    identity: CurrentIdentity = Depends(require_admin),
    svc: AdminService = Depends(_svc),
):
    _own(org_id, identity)
    try:
        return await svc.get_organization(org_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{org_id}", response_model=OrganizationRead)
async def update_organization(
    org_id: int,
    body: OrganizationUpdate,
    identity: CurrentIdentity = Depends(require_admin),
    svc: AdminService = Depends(_svc),
):
    _own(org_id, identity)
    try:
        return await svc.update_organization(org_id, body)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
