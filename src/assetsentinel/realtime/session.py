"""Client session — one live connection bridged to the hub.

Each session owns a bounded outbound queue and two pumps:

1. read_pump drains the transport. It never interprets payloads; its only
   job is to notice the peer going away and unregister the session.
2. write_pump forwards queued messages in order. When the queue is closed
   (the hub unregistered or dropped the session) it closes the transport,
   which sends the termination frame.

Only the hub's dispatch loop calls offer() and close(). Teardown is
cooperative: closing the queue or the transport makes the paired pump
observe end-of-stream or an error and exit by itself.

State: connected → registered → unregistering → closed (closed exactly once).
"""

import asyncio
import enum
import uuid
from typing import TYPE_CHECKING, Optional

import structlog

from assetsentinel.config import settings
from assetsentinel.realtime.transport import Transport, TransportClosed, TransportError

if TYPE_CHECKING:
    from assetsentinel.realtime.hub import Hub

logger = structlog.get_logger()

# End-of-stream marker placed on the queue by close()
_END = None


class SessionState(str, enum.Enum):
    CONNECTED = "connected"
    REGISTERED = "registered"
    UNREGISTERING = "unregistering"
    CLOSED = "closed"


class ClientSession:
    """One organization member's notification channel."""

    def __init__(
        self,
        hub: "Hub",
        transport: Transport,
        organization_id: int,
        user_id: Optional[int] = None,
        queue_size: Optional[int] = None,
    ):
        self.hub = hub
        self.transport = transport
        self.organization_id = organization_id
        self.user_id = user_id
        self.session_id = uuid.uuid4().hex[:12]
        self.state = SessionState.CONNECTED
        self.queue_size = queue_size or settings.session_queue_size
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=self.queue_size)
        self._log = logger.bind(
            session_id=self.session_id,
            organization_id=organization_id,
            user_id=user_id,
        )

    def __repr__(self) -> str:
        return (
            f"<ClientSession {self.session_id} org={self.organization_id} "
            f"user={self.user_id} state={self.state.value}>"
        )

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    @property
    def pending(self) -> int:
        """Messages waiting in the outbound queue."""
        return self._queue.qsize()

    # ─── Hub side ────────────────────────────────────────

    def offer(self, message: str) -> bool:
        """Enqueue without blocking. False means full (or closed)."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> bool:
        """Close the outbound queue. Returns True only on the first call.

        Undelivered messages are discarded; the write pump sees the
        end-of-stream marker next and shuts the transport.
        """
        if self.closed:
            return False
        self.state = SessionState.CLOSED
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        self._queue.put_nowait(_END)
        return True

    # ─── Pumps ───────────────────────────────────────────

    async def read_pump(self) -> None:
        """Drain inbound frames until the transport fails."""
        try:
            while True:
                await self.transport.receive()
        except TransportClosed:
            self._log.debug("session.peer_closed")
        except TransportError as e:
            self._log.warning("session.read_failed", error=str(e))
        finally:
            self.hub.unregister(self)
            await self.transport.close()

    async def write_pump(self) -> None:
        """Deliver queued messages in order until the queue is closed."""
        try:
            while True:
                message = await self._queue.get()
                if message is _END:
                    break
                await self.transport.send(message)
        except TransportError as e:
            self._log.warning("session.write_failed", error=str(e))
            self.hub.unregister(self)
        finally:
            await self.transport.close()

    async def run(self) -> None:
        """Run both pumps until each has exited on its own."""
        reader = asyncio.create_task(self.read_pump(), name=f"session.read:{self.session_id}")
        writer = asyncio.create_task(self.write_pump(), name=f"session.write:{self.session_id}")
        self._log.info("session.started")
        try:
            await asyncio.gather(reader, writer)
        finally:
            for task in (reader, writer):
                if not task.done():
                    task.cancel()
            if not self.closed:
                self.hub.unregister(self)
            self._log.info("session.finished")
