"""FastAPI application factory.

create_app() returns a configured FastAPI instance. The lifespan owns the
two long-lived background pieces: the connection hub (one dispatch loop
per process) and the maintenance scheduler that feeds it.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from assetsentinel import __version__
from assetsentinel.api import api_router
from assetsentinel.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "assetsentinel.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from assetsentinel.realtime.hub import close_hub, init_hub
    from assetsentinel.services.scheduler import MaintenanceScheduler

    hub = init_hub()

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = MaintenanceScheduler(hub)
        scheduler.start()

    yield

    logger.info("assetsentinel.shutdown")

    # Stop producers before the hub so late events are not lost mid-tick
    if scheduler is not None:
        await scheduler.stop()
    await close_hub()

    from assetsentinel.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="AssetSentinel",
        description="Asset maintenance backend with live per-organization notifications",
        version=__version__,
        lifespan=lifespan,
    )

    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → handler
    from assetsentinel.middleware.request_id import RequestIdMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)

    # WebSocket also served at the bare /ws path
    from assetsentinel.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: assetsentinel.main:app)
app = create_app()
