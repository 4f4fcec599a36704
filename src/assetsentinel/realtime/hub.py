"""Connection hub — per-organization registry of live sessions with fan-out.

The organization → sessions map is owned by exactly one task, the dispatch
loop. register(), unregister() and broadcast_to_organization() never touch
the map: they post a command to the hub inbox and return immediately. The
loop applies commands one at a time, which gives a total order over
register / unregister / broadcast without any lock.

Fan-out is best-effort and never blocks the producer: the payload is
serialized once and offered to each session's bounded queue. A session
whose queue is full is treated as dead and dropped from the registry.

The process-wide hub is managed like the other shared resources:
init_hub() at startup, get_hub() from request handlers and workers,
close_hub() at shutdown.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Union

import structlog

from assetsentinel.events.types import BroadcastEvent
from assetsentinel.realtime.session import ClientSession, SessionState

logger = structlog.get_logger()


# ─── Inbox commands ─────────────────────────────────────


@dataclass(frozen=True)
class _Register:
    session: ClientSession


@dataclass(frozen=True)
class _Unregister:
    session: ClientSession


@dataclass(frozen=True)
class _Broadcast:
    organization_id: int
    event: BroadcastEvent


@dataclass(frozen=True)
class _Flush:
    done: asyncio.Future


_SHUTDOWN = object()

_Command = Union[_Register, _Unregister, _Broadcast, _Flush]


# ─── Hub ────────────────────────────────────────────────


class Hub:
    """Registry of live client sessions, keyed by organization."""

    def __init__(self) -> None:
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._organizations: dict[int, set[ClientSession]] = {}
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Spawn the dispatch loop (no-op if it is already running)."""
        if self.running:
            return
        self._stopped = False
        self._task = asyncio.create_task(self._run(), name="hub.dispatch")
        logger.info("hub.started")

    async def stop(self) -> None:
        """Process everything already posted, then close all sessions."""
        if not self.running:
            return
        self._stopped = True
        self._inbox.put_nowait(_SHUTDOWN)
        await self._task
        self._task = None

    # ─── Public API (safe to call from any task) ──────────

    def register(self, session: ClientSession) -> None:
        self._post(_Register(session))

    def unregister(self, session: ClientSession) -> None:
        self._post(_Unregister(session))

    def broadcast_to_organization(self, organization_id: int, event: BroadcastEvent) -> None:
        """Queue `event` for every live session of `organization_id`."""
        self._post(_Broadcast(organization_id, event))

    def broadcast(self, event: BroadcastEvent) -> None:
        self.broadcast_to_organization(event.organization_id, event)

    async def flush(self) -> None:
        """Wait until every command posted before this call has been applied."""
        if not self.running:
            return
        done = asyncio.get_running_loop().create_future()
        self._post(_Flush(done))
        await done

    def connection_counts(self) -> dict[int, int]:
        """Snapshot of live sessions per organization."""
        return {org_id: len(sessions) for org_id, sessions in self._organizations.items()}

    def is_registered(self, session: ClientSession) -> bool:
        return session in self._organizations.get(session.organization_id, ())

    # ─── Dispatch loop ───────────────────────────────────

    def _post(self, command: _Command) -> None:
        if self._stopped:
            self._reject(command)
            return
        self._inbox.put_nowait(command)

    def _reject(self, command: _Command) -> None:
        """Settle a command that arrived after shutdown."""
        if isinstance(command, (_Register, _Unregister)):
            command.session.close()
        elif isinstance(command, _Broadcast):
            logger.debug(
                "hub.broadcast_dropped",
                organization_id=command.organization_id,
                event_type=command.event.type,
            )
        elif isinstance(command, _Flush) and not command.done.done():
            command.done.set_result(None)

    async def _run(self) -> None:
        try:
            while True:
                command = await self._inbox.get()
                if command is _SHUTDOWN:
                    break
                try:
                    self._dispatch(command)
                except Exception:
                    logger.exception("hub.dispatch_error", command=type(command).__name__)
        finally:
            self._stopped = True
            while not self._inbox.empty():
                leftover = self._inbox.get_nowait()
                if leftover is not _SHUTDOWN:
                    self._reject(leftover)
            closed = 0
            for sessions in self._organizations.values():
                for session in sessions:
                    closed += session.close()
            self._organizations.clear()
            logger.info("hub.stopped", sessions_closed=closed)

    def _dispatch(self, command: _Command) -> None:
        if isinstance(command, _Broadcast):
            self._fan_out(command.organization_id, command.event)
        elif isinstance(command, _Register):
            self._add(command.session)
        elif isinstance(command, _Unregister):
            self._remove(command.session)
        elif isinstance(command, _Flush):
            if not command.done.done():
                command.done.set_result(None)

    def _add(self, session: ClientSession) -> None:
        if session.closed:
            logger.debug("hub.register_ignored", session_id=session.session_id)
            return
        sessions = self._organizations.setdefault(session.organization_id, set())
        if session in sessions:
            return
        sessions.add(session)
        session.state = SessionState.REGISTERED
        logger.info(
            "hub.session_registered",
            session_id=session.session_id,
            organization_id=session.organization_id,
            user_id=session.user_id,
            organization_sessions=len(sessions),
        )

    def _remove(self, session: ClientSession, reason: str = "unregistered") -> None:
        sessions = self._organizations.get(session.organization_id)
        if sessions is not None and session in sessions:
            session.state = SessionState.UNREGISTERING
            sessions.discard(session)
            if not sessions:
                del self._organizations[session.organization_id]
            logger.info(
                "hub.session_removed",
                session_id=session.session_id,
                organization_id=session.organization_id,
                reason=reason,
            )
        session.close()

    def _fan_out(self, organization_id: int, event: BroadcastEvent) -> None:
        sessions = self._organizations.get(organization_id)
        if not sessions:
            return
        try:
            payload = event.model_dump_json()
        except (ValueError, TypeError):
            logger.exception("hub.serialize_failed", organization_id=organization_id)
            return

        stalled = [s for s in list(sessions) if not s.offer(payload)]
        for session in stalled:
            logger.warning(
                "hub.session_dropped",
                session_id=session.session_id,
                organization_id=organization_id,
                queue_size=session.queue_size,
            )
            self._remove(session, reason="queue_full")

        logger.debug(
            "hub.broadcast",
            organization_id=organization_id,
            event_type=event.type,
            delivered=len(sessions),
        )


# ─── Process-wide hub ───────────────────────────────────

_hub: Optional[Hub] = None


def init_hub() -> Hub:
    """Create and start the process-wide hub (inside the running loop)."""
    global _hub
    if _hub is None:
        _hub = Hub()
    _hub.start()
    return _hub


async def close_hub() -> None:
    """Stop the process-wide hub and close every session."""
    global _hub
    if _hub is not None:
        await _hub.stop()
        _hub = None


def get_hub() -> Hub:
    """Get the process-wide hub (must be initialized first)."""
    if _hub is None:
        raise RuntimeError("Hub not initialized. Call init_hub() first.")
    return _hub
