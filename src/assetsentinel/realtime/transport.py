"""Transport — the per-session connection the pumps read from and write to.

The hub and sessions only need three operations: a blocking receive that
fails once the peer is gone, a send, and an idempotent close that emits the
termination frame. WebSocketTransport adapts Starlette's WebSocket; tests
use an in-memory transport with the same shape.
"""

from typing import Protocol, Union

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

logger = structlog.get_logger()

NORMAL_CLOSURE = 1000


class TransportError(Exception):
    """Raised when a read or write on the transport fails."""


class TransportClosed(TransportError):
    """Raised when the peer disconnected or the transport was closed."""


class Transport(Protocol):
    async def receive(self) -> Union[str, bytes]: ...

    async def send(self, message: str) -> None: ...

    async def close(self, code: int = NORMAL_CLOSURE) -> None: ...


class WebSocketTransport:
    """Transport over an accepted Starlette/FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False

    async def receive(self) -> Union[str, bytes]:
        if self._closed:
            raise TransportClosed("transport closed")
        try:
            message = await self.websocket.receive()
        except WebSocketDisconnect as e:
            raise TransportClosed(f"peer disconnected (code={e.code})") from e
        except (RuntimeError, OSError) as e:
            raise TransportError(str(e)) from e

        if message["type"] == "websocket.disconnect":
            raise TransportClosed(f"peer disconnected (code={message.get('code')})")
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def send(self, message: str) -> None:
        if self._closed:
            raise TransportClosed("transport closed")
        try:
            await self.websocket.send_text(message)
        except WebSocketDisconnect as e:
            raise TransportClosed(f"peer disconnected (code={e.code})") from e
        except (RuntimeError, OSError) as e:
            raise TransportError(str(e)) from e

    async def close(self, code: int = NORMAL_CLOSURE) -> None:
        if self._closed:
            return
        self._closed = True
        ws = self.websocket
        if (
            ws.client_state != WebSocketState.CONNECTED
            or ws.application_state != WebSocketState.CONNECTED
        ):
            return
        try:
            await ws.close(code=code)
        except (RuntimeError, OSError) as e:
            logger.debug("ws.close_failed", error=str(e))
