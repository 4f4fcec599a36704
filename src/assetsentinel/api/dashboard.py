"""Dashboard and audit routes — read-only views for any organization member.

- GET /dashboard → headline counts for the caller's organization
- GET /audit → paginated audit trail, newest first, ?table= to narrow
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from assetsentinel.api.deps import get_repository
from assetsentinel.auth.dependencies import CurrentIdentity, get_current_user
from assetsentinel.db.repository import Repository
from assetsentinel.schemas.audit import AuditLogRead, DashboardStats
from assetsentinel.schemas.pagination import Page, paginate
from assetsentinel.services.admin_service import AdminService

router = APIRouter()


@router.get("/dashboard", response_model=DashboardStats)
async def get_dashboard(
    identity: CurrentIdentity = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    today = datetime.now(timezone.utc).date()
    return DashboardStats(**await repo.get_dashboard_stats(identity.org_id, today))


@router.get("/audit", response_model=Page[AuditLogRead])
async def list_audit_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    table: Optional[str] = Query(None, description="Filter by table name"),
    identity: CurrentIdentity = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
):
    items, total = await AdminService(repo).list_audit_logs(identity.org_id, page, page_size, table)
    return paginate(AuditLogRead, items, total, page, page_size)
