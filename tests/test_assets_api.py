"""Asset API tests — CRUD, pagination, filters, soft delete."""

import pytest


async def _create(client, **overrides):
    body = {"name": "Chiller #1", "category": "hvac", "purchase_cost": 12500.0}
    body.update(overrides)
    r = await client.post("/api/v1/assets", json=body)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_create_and_get_asset(client, seed):
    asset = await _create(client, serial_number="CH-001")
    assert asset["organization_id"] == seed.org_id
    assert asset["status"] == "active"

    r = await client.get(f"/api/v1/assets/{asset['id']}")
    assert r.status_code == 200
    assert r.json()["serial_number"] == "CH-001"


@pytest.mark.asyncio
async def test_list_assets_paginates_and_filters(client):
    for i in range(3):
        await _create(client, name=f"Pump {i}", category="pumps")
    await _create(client, name="Boiler", category="hvac", status="retired")

    r = await client.get("/api/v1/assets", params={"page": 1, "page_size": 2})
    body = r.json()
    assert body["total"] == 4
    assert len(body["data"]) == 2
    assert body["page_size"] == 2

    r = await client.get("/api/v1/assets", params={"category": "pumps"})
    assert r.json()["total"] == 3

    r = await client.get("/api/v1/assets", params={"status": "retired"})
    assert [a["name"] for a in r.json()["data"]] == ["Boiler"]


@pytest.mark.asyncio
async def test_update_asset(client):
    asset = await _create(client)
    r = await client.put(
        f"/api/v1/assets/{asset['id']}", json={"status": "under_maintenance", "location": "Roof"}
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "under_maintenance"
    assert body["location"] == "Roof"
    assert body["name"] == "Chiller #1"


@pytest.mark.asyncio
async def test_invalid_status_rejected(client):
    r = await client.post(
        "/api/v1/assets", json={"name": "X", "category": "y", "status": "exploded"}
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_soft_deleted_asset_disappears(client):
    asset = await _create(client)
    r = await client.delete(f"/api/v1/assets/{asset['id']}")
    assert r.status_code == 204

    assert (await client.get(f"/api/v1/assets/{asset['id']}")).status_code == 404
    assert (await client.delete(f"/api/v1/assets/{asset['id']}")).status_code == 404
    assert (await client.get("/api/v1/assets")).json()["total"] == 0


@pytest.mark.asyncio
async def test_asset_of_other_organization_is_hidden(client, identity):
    asset = await _create(client)
    identity.org_id = identity.org_id + 1000
    r = await client.get(f"/api/v1/assets/{asset['id']}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_null_fields_in_update_are_ignored(client):
    asset = await _create(client)
    r = await client.put(f"/api/v1/assets/{asset['id']}", json={"name": None, "status": None})
    assert r.status_code == 200
    assert r.json()["name"] == "Chiller #1"
    assert r.json()["status"] == "active"
