"""Admin service — organizations, their members, and the audit trail.

Every change made here appends an AuditLog row in the same transaction,
so the trail never records a change that was rolled back (or misses one
that was committed). Password hashes never enter old_values/new_values.
"""

from __future__ import annotations

from typing import Optional

import structlog

from assetsentinel.auth.password import hash_password
from assetsentinel.db.models import AuditLog, Organization, User
from assetsentinel.db.repository import Repository
from assetsentinel.errors import ConflictError, NotFoundError
from assetsentinel.schemas.organization import OrganizationCreate, OrganizationUpdate
from assetsentinel.schemas.user import UserCreate, UserUpdate

logger = structlog.get_logger()

_USER_FIELDS = ("email", "full_name", "role")


def _snapshot(obj, fields) -> dict:
    return {field: getattr(obj, field) for field in fields}


class AdminService:
    """Tenant administration for one acting user."""

    def __init__(self, repo: Repository, actor_id: Optional[int] = None):
        self.repo = repo
        self.actor_id = actor_id

    async def _record(
        self,
        org_id: int,
        table_name: str,
        record_id: int,
        action: str,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
    ) -> None:
        await self.repo.add_audit_log(
            AuditLog(
                organization_id=org_id,
                user_id=self.actor_id,
                table_name=table_name,
                record_id=record_id,
                action=action,
                old_values=old_values or {},
                new_values=new_values or {},
            )
        )

    # ─── Organizations ──────────────────────────────────

    async def list_organizations(self) -> list[Organization]:
        return await self.repo.list_organizations()

    async def create_organization(self, data: OrganizationCreate) -> Organization:
        org = Organization(name=data.name)
        await self.repo.add(org)
        await self._record(
            org.id, "organizations", org.id, "create", new_values={"name": org.name}
        )
        await self.repo.commit()
        logger.info("admin.organization_created", organization_id=org.id)
        return org

    async def get_organization(self, org_id: int) -> Organization:
        org = await self.repo.get_organization(org_id)
        if org is None:
            raise NotFoundError(f"Organization {org_id} not found")
        return org

    async def update_organization(self, org_id: int, changes: OrganizationUpdate) -> Organization:
        org = await self.get_organization(org_id)
        fields = changes.model_dump(exclude_none=True)
        old = _snapshot(org, fields)
        for key, value in fields.items():
            setattr(org, key, value)
        if fields:
            await self._record(org_id, "organizations", org_id, "update", old, fields)
        await self.repo.commit()
        await self.repo.refresh(org)
        return org

    # ─── Users ──────────────────────────────────────────

    async def list_users(self, org_id: int) -> list[User]:
        return await self.repo.list_users(org_id)

    async def get_user(self, org_id: int, user_id: int) -> User:
        user = await self.repo.get_organization_user(org_id, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def create_user(self, org_id: int, data: UserCreate) -> User:
        if await self.repo.get_user_by_email(data.email):
            raise ConflictError("Email already registered")
        user = User(
            organization_id=org_id,
            email=data.email,
            full_name=data.full_name,
            role=data.role,
            password_hash=hash_password(data.password),
        )
        await self.repo.add(user)
        await self._record(
            org_id, "users", user.id, "create", new_values=_snapshot(user, _USER_FIELDS)
        )
        await self.repo.commit()
        logger.info("admin.user_created", user_id=user.id, organization_id=org_id, role=user.role)
        return user

    async def update_user(self, org_id: int, user_id: int, changes: UserUpdate) -> User:
        user = await self.get_user(org_id, user_id)
        fields = changes.model_dump(exclude_none=True)
        password = fields.pop("password", None)

        old = _snapshot(user, fields)
        for key, value in fields.items():
            setattr(user, key, value)
        new = dict(fields)
        if password is not None:
            user.password_hash = hash_password(password)
            new["password_changed"] = True

        if new:
            await self._record(org_id, "users", user_id, "update", old, new)
        await self.repo.commit()
        await self.repo.refresh(user)
        return user

    async def delete_user(self, org_id: int, user_id: int) -> None:
        if user_id == self.actor_id:
            raise ConflictError("Admins cannot delete their own account")
        user = await self.get_user(org_id, user_id)
        old = _snapshot(user, _USER_FIELDS)
        await self.repo.delete_user(org_id, user_id)
        await self._record(org_id, "users", user_id, "delete", old_values=old)
        await self.repo.commit()
        logger.info("admin.user_deleted", user_id=user_id, organization_id=org_id)

    # ─── Audit trail ────────────────────────────────────

    async def list_audit_logs(
        self,
        org_id: int,
        page: int = 1,
        page_size: int = 20,
        table_name: Optional[str] = None,
    ) -> tuple[list[AuditLog], int]:
        return await self.repo.list_audit_logs(org_id, page, page_size, table_name)
