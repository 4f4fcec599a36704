"""WebSocket endpoint — live organization events for frontend clients.

Each client connects to /ws?token=JWT. The handler:
1. Authenticates via the JWT query param (close code 4001 if missing/invalid)
2. Wraps the socket in a ClientSession bound to the token's organization
3. Registers the session with the hub, then accepts the upgrade
4. Runs the session's read/write pumps until either side goes away

The hub decides what gets delivered; this handler never reads payloads.
"""

import structlog
from fastapi import APIRouter, WebSocket

from assetsentinel.auth.jwt import TokenError, verify_token
from assetsentinel.realtime.hub import get_hub
from assetsentinel.realtime.session import ClientSession
from assetsentinel.realtime.transport import WebSocketTransport

logger = structlog.get_logger()
router = APIRouter()

UNAUTHORIZED_CLOSE_CODE = 4001


@router.websocket("/ws")
async def organization_websocket(websocket: WebSocket):
    """Stream every event of the caller's organization as JSON text frames."""
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE, reason="Authentication required")
        return

    try:
        claims = verify_token(token)
        org_id = int(claims["org_id"])
        user_id = int(claims["sub"])
    except (TokenError, KeyError, TypeError, ValueError):
        logger.info("ws.auth_rejected")
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE, reason="Invalid or expired token")
        return

    hub = get_hub()
    session = ClientSession(hub, WebSocketTransport(websocket), org_id, user_id)

    # Registration is queued before the upgrade completes, so anything
    # broadcast after the client sees the accept reaches this session.
    hub.register(session)
    try:
        await websocket.accept()
    except (RuntimeError, OSError) as e:
        logger.warning("ws.accept_failed", session_id=session.session_id, error=str(e))
        hub.unregister(session)
        return

    await session.run()
