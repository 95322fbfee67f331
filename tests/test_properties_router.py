"""Property CRUD endpoints with a faked repository."""

from datetime import datetime, timezone

import asyncpg
import pytest

from properties import repository

STAMP = datetime(2025, 3, 1, tzinfo=timezone.utc)


def _row(row_id: int, reference: str, **overrides):
    row = {
        "id": row_id,
        "reference": reference,
        "title": f"Listing {reference}",
        "created_at": STAMP,
        "updated_at": STAMP,
    }
    row.update(overrides)
    return row


@pytest.fixture
def calls(monkeypatch):
    recorded: dict[str, list] = {}
    rows = {1: _row(1, "NS-1"), 2: _row(2, "NS-2", property_status="Ready")}

    async def list_properties(*, filters=None, limit=50, offset=0):
        recorded.setdefault("list", []).append({"filters": filters, "limit": limit, "offset": offset})
        items = sorted(rows.values(), key=lambda r: r["id"], reverse=True)
        return items[offset : offset + limit], len(items)

    async def get_property(property_id):
        return rows.get(property_id)

    async def get_property_by_reference(reference):
        return next((r for r in rows.values() if r["reference"] == reference), None)

    async def create_property(values):
        if any(r["reference"] == values["reference"] for r in rows.values()):
            raise asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
        row = {**values, "id": 3, "created_at": STAMP, "updated_at": STAMP}
        rows[3] = row
        return row

    async def update_property(property_id, changes):
        recorded.setdefault("update", []).append(changes)
        if property_id not in rows:
            return None
        rows[property_id].update(changes)
        return rows[property_id]

    async def delete_property(property_id):
        return rows.pop(property_id, None) is not None

    for fn in (list_properties, get_property, get_property_by_reference, create_property, update_property, delete_property):
        monkeypatch.setattr(repository, fn.__name__, fn)
    return recorded


def test_list_is_public_and_paginated(anon_client, calls):
    resp = anon_client.get("/api/properties", params={"page": 1, "page_size": 1, "property_status": "Ready"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert body["page_size"] == 1
    assert [item["id"] for item in body["items"]] == [2]
    assert calls["list"][0]["filters"] == {"property_status": "Ready"}


def test_list_rejects_oversized_page(anon_client, calls):
    resp = anon_client.get("/api/properties", params={"page_size": 1000})

    assert resp.status_code == 422


def test_get_by_id_and_reference(anon_client, calls):
    assert anon_client.get("/api/properties/1").json()["reference"] == "NS-1"
    assert anon_client.get("/api/properties/by-reference/NS-2").json()["id"] == 2
    assert anon_client.get("/api/properties/99").status_code == 404


def test_create_requires_auth(anon_client, calls):
    resp = anon_client.post("/api/properties", json={"reference": "NS-3", "title": "New"})

    assert resp.status_code == 401


def test_create_property(client, calls):
    resp = client.post("/api/properties", json={"reference": "NS-3", "title": "New", "price": 900000})

    assert resp.status_code == 201
    body = resp.json()
    assert body["id"] == 3
    assert body["property_status"] == "Off Plan"
    assert body["currency"] == "AED"


def test_create_duplicate_reference_is_409(client, calls):
    resp = client.post("/api/properties", json={"reference": "NS-1", "title": "Dup"})

    assert resp.status_code == 409


def test_create_rejects_unknown_status(client, calls):
    resp = client.post("/api/properties", json={"reference": "NS-4", "title": "X", "property_status": "Rented"})

    assert resp.status_code == 422


def test_update_is_partial_and_ignores_null_for_required_columns(client, calls):
    resp = client.put("/api/properties/1", json={"is_featured": True, "title": None, "description": None})

    assert resp.status_code == 200
    assert calls["update"][0] == {"is_featured": True, "description": None}
    assert resp.json()["is_featured"] is True


def test_update_missing_is_404(client, calls):
    assert client.put("/api/properties/42", json={"sold": True}).status_code == 404


def test_delete(client, calls):
    assert client.delete("/api/properties/1").status_code == 204
    assert client.delete("/api/properties/1").status_code == 404
