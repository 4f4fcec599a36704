"""Health check endpoint.

Verifies the server is running, Postgres is reachable, and reports how
many live sessions each organization has on this process.
"""

from fastapi import APIRouter
from sqlalchemy import text

from assetsentinel import __version__
from assetsentinel.api.deps import get_event_hub
from assetsentinel.db.engine import engine

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["postgres"] = "ok"
    except Exception as e:
        checks["postgres"] = f"error: {e}"

    hub = get_event_hub()
    checks["hub"] = "ok" if hub is not None and hub.running else "stopped"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    connections = hub.connection_counts() if hub is not None else {}
    return {
        "status": status,
        **checks,
        "connections": {str(org_id): n for org_id, n in connections.items()},
    }
