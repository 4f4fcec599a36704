"""Shared route dependencies: repository per request, hub, role guards."""

from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from assetsentinel.auth.dependencies import require_role
from assetsentinel.db.engine import get_db
from assetsentinel.db.repository import Repository
from assetsentinel.realtime.hub import Hub, get_hub


def get_repository(db: AsyncSession = Depends(get_db)) -> Repository:
    return Repository(db)


def get_event_hub() -> Optional[Hub]:
    """The process-wide hub, or None when it is not running (CLI, scripts)."""
    try:
        return get_hub()
    except RuntimeError:
        return None


# Writes are for managers, deletes for admins only
require_manager = require_role("admin", "maintenance_manager")
require_admin = require_role("admin")
