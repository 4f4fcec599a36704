"""Test fixtures.

Two kinds of tests live here:

1. Core tests (hub, sessions, scheduler, services) run entirely in memory:
   FakeTransport stands in for a WebSocket and FakeRepository for Postgres,
   so they need no database.
2. API tests use the real app over httpx's ASGITransport with a per-test
   session. The session uses join_transaction_mode="create_savepoint" so
   that service-layer commit() creates a SAVEPOINT; the outer transaction
   rolls back after the test. They skip when Postgres is unreachable.
"""

import asyncio
import itertools
import uuid
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from assetsentinel.config import settings
from assetsentinel.db.models import (
    OPEN_TASK_STATUSES,
    Base,
    MaintenanceTask,
    Organization,
    User,
)
from assetsentinel.errors import InsufficientStockError
from assetsentinel.realtime.hub import Hub
from assetsentinel.realtime.transport import NORMAL_CLOSURE, TransportClosed, TransportError

TEST_DB_URL = settings.database_url


# ═══════════════════════════════════════════════════════════
# In-memory fakes
# ═══════════════════════════════════════════════════════════


class FakeTransport:
    """Transport double: inbound frames are fed by the test, sends are recorded."""

    def __init__(self, fail_send: bool = False):
        self.inbound: asyncio.Queue = asyncio.Queue()
        self.sent: list[str] = []
        self.closed = False
        self.close_code = None
        self.fail_send = fail_send

    async def receive(self):
        if self.closed:
            raise TransportClosed("transport closed")
        item = await self.inbound.get()
        if item is None:
            raise TransportClosed("peer closed")
        if isinstance(item, Exception):
            raise item
        return item

    async def send(self, message: str) -> None:
        if self.closed:
            raise TransportClosed("transport closed")
        if self.fail_send:
            raise TransportError("broken pipe")
        self.sent.append(message)

    async def close(self, code: int = NORMAL_CLOSURE) -> None:
        if self.closed:
            return
        self.closed = True
        self.close_code = code
        self.inbound.put_nowait(None)

    def disconnect(self) -> None:
        """Simulate the peer going away."""
        self.inbound.put_nowait(None)


class RecordingHub:
    """Hub double that just remembers what was broadcast."""

    def __init__(self, fail: bool = False):
        self.events = []
        self.fail = fail

    def broadcast(self, event) -> None:
        if self.fail:
            raise RuntimeError("hub unavailable")
        self.events.append(event)

    def of_type(self, event_type: str) -> list:
        return [e for e in self.events if e.type == event_type]


class FakeStore:
    """Shared in-memory "database" behind FakeRepository scopes."""

    def __init__(self):
        self.organizations: list = []
        self.plans: dict = {}
        self.tasks: dict = {}
        self.work_orders: dict = {}
        self.parts: dict = {}
        self.fail_organizations = False
        self.fail_plan_ids: set = set()
        self.fail_task_ids: set = set()
        self.fail_fetch_org_ids: set = set()
        self.fetch_gate: Optional[asyncio.Event] = None
        self.fetch_started = asyncio.Event()
        self.commits = 0
        self.rollbacks = 0
        self._ids = itertools.count(1)

    def next_id(self) -> int:
        return next(self._ids)

    def add_organization(self, org_id: int):
        self.organizations.append(SimpleNamespace(id=org_id, name=f"org-{org_id}"))


class FakeRepository:
    """Repository double with staged writes: commit applies, rollback discards."""

    def __init__(self, store: FakeStore):
        self.store = store
        self._pending: list = []

    async def commit(self) -> None:
        for apply in self._pending:
            apply()
        self._pending.clear()
        self.store.commits += 1

    async def rollback(self) -> None:
        self._pending.clear()
        self.store.rollbacks += 1

    async def refresh(self, obj) -> None:
        return None

    async def add(self, obj):
        if getattr(obj, "id", None) is None:
            obj.id = self.store.next_id()
        table = {
            "WorkOrder": self.store.work_orders,
            "InventoryPart": self.store.parts,
            "MaintenanceTask": self.store.tasks,
            "MaintenancePlan": self.store.plans,
        }[type(obj).__name__]
        self._pending.append(lambda: table.__setitem__(obj.id, obj))
        return obj

    # ─── Scheduler contract ──────────────────────────────

    async def list_organizations(self):
        if self.store.fail_organizations:
            raise ConnectionError("database unavailable")
        return list(self.store.organizations)

    async def get_maintenance_plans_due(self, org_id, today):
        self.store.fetch_started.set()
        if self.store.fetch_gate is not None:
            await self.store.fetch_gate.wait()
        if org_id in self.store.fail_fetch_org_ids:
            raise ConnectionError(f"due query failed for organization {org_id}")
        return sorted(
            (
                p for p in self.store.plans.values()
                if p.organization_id == org_id and p.next_maintenance_date <= today
            ),
            key=lambda p: (p.next_maintenance_date, p.id),
        )

    async def create_maintenance_task(self, task):
        if task.maintenance_plan_id in self.store.fail_plan_ids:
            raise RuntimeError(f"insert failed for plan {task.maintenance_plan_id}")
        return await self.add(task)

    async def advance_maintenance_plan(self, org_id, plan_id, next_date):
        plan = self.store.plans[plan_id]
        self._pending.append(lambda: setattr(plan, "next_maintenance_date", next_date))
        return True

    async def get_overdue_maintenance_tasks(self, org_id, today):
        if org_id in self.store.fail_fetch_org_ids:
            raise ConnectionError(f"overdue query failed for organization {org_id}")
        # Detached copies, like rows loaded in another session
        return [
            MaintenanceTask(
                id=t.id,
                organization_id=t.organization_id,
                maintenance_plan_id=t.maintenance_plan_id,
                asset_id=t.asset_id,
                scheduled_date=t.scheduled_date,
                status=t.status,
            )
            for t in sorted(self.store.tasks.values(), key=lambda t: t.id)
            if t.organization_id == org_id
            and t.scheduled_date < today
            and t.status in OPEN_TASK_STATUSES
        ]

    async def update_maintenance_task(self, task):
        if task.id in self.store.fail_task_ids:
            raise RuntimeError(f"update failed for task {task.id}")
        stored = self.store.tasks[task.id]
        status = task.status
        self._pending.append(lambda: setattr(stored, "status", status))
        return True

    # ─── Service contract ────────────────────────────────

    async def get_work_order(self, org_id, work_order_id):
        wo = self.store.work_orders.get(work_order_id)
        return wo if wo is not None and wo.organization_id == org_id else None

    async def get_inventory_part(self, org_id, part_id):
        part = self.store.parts.get(part_id)
        return part if part is not None and part.organization_id == org_id else None

    async def deduct_inventory(self, org_id, part_id, quantity):
        part = await self.get_inventory_part(org_id, part_id)
        if part is None:
            return None
        if part.quantity < quantity:
            raise InsufficientStockError(f"{part.quantity} on hand, {quantity} requested")
        part.quantity -= quantity
        return part


@pytest.fixture()
def store():
    return FakeStore()


@pytest.fixture()
def fake_repo(store):
    return FakeRepository(store)


@pytest.fixture()
def open_repository(store):
    """Factory with the same shape as db.repository.open_repository."""

    @asynccontextmanager
    async def _open():
        yield FakeRepository(store)

    return _open


@pytest.fixture()
def recording_hub():
    return RecordingHub()


@pytest_asyncio.fixture()
async def hub():
    """A running hub, stopped after the test."""
    h = Hub()
    h.start()
    try:
        yield h
    finally:
        await h.stop()


@pytest.fixture()
def eventually():
    """Poll an async-side condition until it holds (or fail after `timeout`)."""

    async def _wait(predicate, timeout: float = 2.0):
        deadline = asyncio.get_running_loop().time() + timeout
        while not predicate():
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait


# ═══════════════════════════════════════════════════════════
# Database-backed fixtures
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session with automatic rollback via savepoints.

    Tables are created inside the outer transaction, so they vanish
    with everything else when it rolls back.
    """
    engine = create_async_engine(TEST_DB_URL, echo=False)
    try:
        conn = await engine.connect()
    except Exception as e:
        await engine.dispose()
        pytest.skip(f"Postgres unavailable: {e}")

    try:
        trans = await conn.begin()
        await conn.run_sync(Base.metadata.create_all)
        session = AsyncSession(
            bind=conn,
            expire_on_commit=False,
            join_transaction_mode="create_savepoint",
        )
        try:
            yield session
        finally:
            await session.close()
            await trans.rollback()
    finally:
        await conn.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def seed(db_session):
    """One organization with an admin user."""
    from assetsentinel.auth.password import hash_password

    org = Organization(name="Acme Plant")
    db_session.add(org)
    await db_session.flush()
    admin = User(
        organization_id=org.id,
        email=f"admin-{uuid.uuid4().hex[:8]}@acme.test",
        full_name="Ada Admin",
        role="admin",
        password_hash=hash_password("secret123"),
    )
    db_session.add(admin)
    await db_session.flush()
    return SimpleNamespace(org_id=org.id, user_id=admin.id, email=admin.email)


@pytest.fixture()
def identity(seed):
    """The caller every `client` request is made as. Tests may change .role."""
    from assetsentinel.auth.dependencies import CurrentIdentity

    return CurrentIdentity(user_id=seed.user_id, org_id=seed.org_id, role="admin")


@pytest_asyncio.fixture()
async def client(db_session, identity, recording_hub):
    """HTTP client with get_db, auth and the hub overridden for testing.

    get_current_user is overridden to return `identity`, so protected
    routes work without real JWT tokens; role guards still apply.
    """
    from assetsentinel.api.deps import get_event_hub
    from assetsentinel.auth.dependencies import get_current_user
    from assetsentinel.db.engine import get_db
    from assetsentinel.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: identity
    app.dependency_overrides[get_event_hub] = lambda: recording_hub

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauthenticated_client(db_session):
    """HTTP client WITHOUT the auth override, for real JWT flows."""
    from assetsentinel.db.engine import get_db
    from assetsentinel.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
