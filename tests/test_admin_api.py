"""Admin API tests — organizations, users, audit trail, dashboard."""

from datetime import datetime, timedelta, timezone

import pytest

from assetsentinel.auth.password import verify_password
from assetsentinel.db.models import MaintenancePlan, MaintenanceTask, User


async def _create_user(client, email="tech@acme.test", role="technician"):
    r = await client.post(
        "/api/v1/users",
        json={"email": email, "password": "wrench123", "full_name": "Tess Tech", "role": role},
    )
    assert r.status_code == 201, r.text
    return r.json()


# ─── Organizations ────────────────────────────────────────


@pytest.mark.asyncio
async def test_admin_reads_and_renames_own_organization(client, seed):
    r = await client.get(f"/api/v1/organizations/{seed.org_id}")
    assert r.status_code == 200
    assert r.json()["name"] == "Acme Plant"

    r = await client.put(f"/api/v1/organizations/{seed.org_id}", json={"name": "Acme Works"})
    assert r.status_code == 200
    assert r.json()["name"] == "Acme Works"

    r = await client.get("/api/v1/audit", params={"table": "organizations"})
    (entry,) = r.json()["data"]
    assert entry["action"] == "update"
    assert entry["old_values"] == {"name": "Acme Plant"}
    assert entry["new_values"] == {"name": "Acme Works"}
    assert entry["user_id"] == seed.user_id


@pytest.mark.asyncio
async def test_create_and_list_organizations(client, seed):
    r = await client.post("/api/v1/organizations", json={"name": "Globex"})
    assert r.status_code == 201
    created = r.json()

    r = await client.get("/api/v1/organizations")
    ids = [o["id"] for o in r.json()]
    assert seed.org_id in ids
    assert created["id"] in ids


@pytest.mark.asyncio
async def test_other_organization_is_invisible(client):
    r = await client.post("/api/v1/organizations", json={"name": "Globex"})
    other = r.json()["id"]

    assert (await client.get(f"/api/v1/organizations/{other}")).status_code == 404
    r = await client.put(f"/api/v1/organizations/{other}", json={"name": "Mine now"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_null_name_leaves_organization_unchanged(client, seed):
    r = await client.put(f"/api/v1/organizations/{seed.org_id}", json={"name": None})
    assert r.status_code == 200
    assert r.json()["name"] == "Acme Plant"
    assert (await client.get("/api/v1/audit")).json()["total"] == 0


# ─── Users ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_user_crud(client, seed, db_session):
    user = await _create_user(client)
    assert user["organization_id"] == seed.org_id
    assert "password_hash" not in user

    r = await client.get("/api/v1/users")
    assert {u["email"] for u in r.json()} == {seed.email, "tech@acme.test"}

    r = await client.put(
        f"/api/v1/users/{user['id']}", json={"role": "maintenance_manager", "password": "newpass1"}
    )
    assert r.status_code == 200
    assert r.json()["role"] == "maintenance_manager"
    stored = await db_session.get(User, user["id"])
    assert verify_password("newpass1", stored.password_hash)

    assert (await client.delete(f"/api/v1/users/{user['id']}")).status_code == 204
    assert (await client.get(f"/api/v1/users/{user['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_duplicate_email_conflicts(client, seed):
    r = await client.post(
        "/api/v1/users",
        json={"email": seed.email, "password": "secret12", "full_name": "Dup"},
    )
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client, seed):
    r = await client.delete(f"/api/v1/users/{seed.user_id}")
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_user_changes_are_audited_without_secrets(client):
    user = await _create_user(client)
    await client.put(f"/api/v1/users/{user['id']}", json={"password": "another1"})
    await client.delete(f"/api/v1/users/{user['id']}")

    r = await client.get("/api/v1/audit", params={"table": "users"})
    body = r.json()
    assert body["total"] == 3
    assert [e["action"] for e in body["data"]] == ["delete", "update", "create"]
    for entry in body["data"]:
        assert "password_hash" not in entry["old_values"]
        assert "password_hash" not in entry["new_values"]
        assert entry["record_id"] == user["id"]
    assert body["data"][1]["new_values"] == {"password_changed": True}


@pytest.mark.asyncio
async def test_audit_paginates(client):
    for i in range(3):
        await _create_user(client, email=f"t{i}@acme.test")

    r = await client.get("/api/v1/audit", params={"page": 2, "page_size": 2})
    body = r.json()
    assert body["total"] == 3
    assert body["page"] == 2
    assert len(body["data"]) == 1


@pytest.mark.asyncio
async def test_admin_routes_require_admin(client, seed, identity):
    identity.role = "maintenance_manager"

    assert (await client.get("/api/v1/users")).status_code == 403
    assert (await client.get("/api/v1/organizations")).status_code == 403
    assert (await client.get(f"/api/v1/organizations/{seed.org_id}")).status_code == 403
    # Read-only views stay open to every member
    assert (await client.get("/api/v1/audit")).status_code == 200
    assert (await client.get("/api/v1/dashboard")).status_code == 200


@pytest.mark.asyncio
async def test_admin_routes_require_authentication(unauthenticated_client):
    assert (await unauthenticated_client.get("/api/v1/users")).status_code == 401
    assert (await unauthenticated_client.get("/api/v1/dashboard")).status_code == 401


# ─── Dashboard ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_dashboard_counts(client, seed, db_session):
    r = await client.post("/api/v1/assets", json={"name": "Press", "category": "line"})
    asset_id = r.json()["id"]
    await client.post("/api/v1/assets", json={"name": "Lathe", "category": "line"})
    await client.post(
        "/api/v1/inventory",
        json={"name": "Belt", "sku": "B-1", "quantity": 1, "min_threshold": 5},
    )
    await client.post(
        "/api/v1/inventory",
        json={"name": "Bolt", "sku": "B-2", "quantity": 50, "min_threshold": 5},
    )
    await client.post(
        "/api/v1/work-orders",
        json={"asset_id": asset_id, "title": "Fix press", "total_cost": 120.5},
    )
    r = await client.post(
        "/api/v1/work-orders",
        json={"asset_id": asset_id, "title": "Oil lathe", "total_cost": 30},
    )
    await client.put(f"/api/v1/work-orders/{r.json()['id']}", json={"status": "completed"})

    today = datetime.now(timezone.utc).date()
    plan = MaintenancePlan(
        organization_id=seed.org_id,
        asset_id=asset_id,
        frequency_days=30,
        next_maintenance_date=today + timedelta(days=30),
    )
    db_session.add(plan)
    await db_session.flush()
    yesterday = today - timedelta(days=1)
    db_session.add_all(
        [
            MaintenanceTask(
                organization_id=seed.org_id, maintenance_plan_id=plan.id,
                asset_id=asset_id, scheduled_date=yesterday, status="pending",
            ),
            MaintenanceTask(
                organization_id=seed.org_id, maintenance_plan_id=plan.id,
                asset_id=asset_id, scheduled_date=yesterday, status="overdue",
            ),
            MaintenanceTask(
                organization_id=seed.org_id, maintenance_plan_id=plan.id,
                asset_id=asset_id, scheduled_date=yesterday, status="completed",
            ),
        ]
    )
    await db_session.flush()

    r = await client.get("/api/v1/dashboard")
    assert r.status_code == 200
    assert r.json() == {
        "asset_count": 2,
        "overdue_maintenance": 2,
        "low_stock": 1,
        "open_work_orders": 1,
        "total_costs": 150.5,
    }
