"""API route aggregation.

All routers registered here get mounted in main.py under /api/v1.
Auth is applied at the include_router level; role checks that differ
per verb (manager for writes, admin for deletes) live on the handlers.
Health and auth routers are open.
"""

from fastapi import APIRouter, Depends

from assetsentinel.api.assets import router as assets_router
from assetsentinel.api.auth import router as auth_router
from assetsentinel.api.dashboard import router as dashboard_router
from assetsentinel.api.health import router as health_router
from assetsentinel.api.inventory import router as inventory_router
from assetsentinel.api.maintenance import router as maintenance_router
from assetsentinel.api.organizations import router as organizations_router
from assetsentinel.api.users import router as users_router
from assetsentinel.api.work_orders import router as work_orders_router
from assetsentinel.auth.dependencies import get_current_user
from assetsentinel.realtime.websocket import router as ws_router

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes: no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(ws_router, tags=["realtime"])

# Protected routes: require a valid JWT
api_router.include_router(assets_router, tags=["assets"], dependencies=_auth)
api_router.include_router(maintenance_router, tags=["maintenance"], dependencies=_auth)
api_router.include_router(work_orders_router, tags=["work-orders"], dependencies=_auth)
api_router.include_router(inventory_router, tags=["inventory"], dependencies=_auth)
api_router.include_router(dashboard_router, tags=["dashboard"], dependencies=_auth)
api_router.include_router(organizations_router, tags=["organizations"], dependencies=_auth)
api_router.include_router(users_router, tags=["users"], dependencies=_auth)
