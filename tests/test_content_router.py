"""Generic content CRUD, exercised through a few representative resources."""

import itertools
from datetime import datetime, timezone

import asyncpg
import pytest

from content import repository, resources, schemas, service

STAMP = datetime(2025, 3, 1, tzinfo=timezone.utc)


class FakeContentStore:
    def __init__(self):
        self.tables: dict[str, dict[int, dict]] = {}
        self.list_calls: list[dict] = []
        self._ids = itertools.count(1)

    def table(self, resource):
        return self.tables.setdefault(resource.table, {})

    async def list_items(self, resource, *, q=None, filters=None, limit=100, offset=0):
        self.list_calls.append({"table": resource.table, "q": q, "filters": filters, "limit": limit})
        rows = list(self.table(resource).values())
        for column, value in (filters or {}).items():
            rows = [r for r in rows if r.get(column) == value]
        return rows[offset : offset + limit]

    async def get_item(self, resource, item_id):
        return self.table(resource).get(item_id)

    async def get_item_by(self, resource, column, value):
        return next((r for r in self.table(resource).values() if r.get(column) == value), None)

    async def create_item(self, resource, values):
        for column in resource.unique_columns:
            if any(r.get(column) == values.get(column) for r in self.table(resource).values()):
                raise asyncpg.UniqueViolationError("duplicate key")
        row_id = next(self._ids)
        row = {**values, "id": row_id, "created_at": STAMP, "updated_at": STAMP}
        self.table(resource)[row_id] = row
        return row

    async def update_item(self, resource, item_id, changes):
        row = self.table(resource).get(item_id)
        if row is None:
            return None
        row.update(changes)
        return row

    async def delete_item(self, resource, item_id):
        return self.table(resource).pop(item_id, None) is not None


@pytest.fixture
def store(monkeypatch):
    fake = FakeContentStore()
    for name in ("list_items", "get_item", "get_item_by", "create_item", "update_item", "delete_item"):
        monkeypatch.setattr(repository, name, getattr(fake, name))
    return fake


def test_agents_list_is_public(anon_client, store):
    resp = anon_client.get("/api/agents", params={"q": "jane"})

    assert resp.status_code == 200
    assert resp.json() == {"items": [], "limit": 100, "offset": 0, "count": 0}
    assert store.list_calls[0]["q"] == "jane"


def test_agent_create_requires_auth(anon_client, store):
    resp = anon_client.post("/api/agents", json={"name": "Jane", "email": "jane@nordstern.ae"})

    assert resp.status_code == 401


def test_agent_crud_roundtrip(client, store):
    created = client.post("/api/agents", json={"name": "Jane", "email": "jane@nordstern.ae", "experience": 6})
    assert created.status_code == 201
    agent_id = created.json()["id"]

    updated = client.put(f"/api/agents/{agent_id}", json={"job_title": "Senior Broker"})
    assert updated.status_code == 200
    assert updated.json()["job_title"] == "Senior Broker"
    assert updated.json()["name"] == "Jane"

    assert client.get(f"/api/agents/{agent_id}").status_code == 200
    assert client.delete(f"/api/agents/{agent_id}").status_code == 204
    assert client.get(f"/api/agents/{agent_id}").status_code == 404


def test_agent_rejects_bad_email(client, store):
    resp = client.post("/api/agents", json={"name": "Jane", "email": "not-an-email"})

    assert resp.status_code == 422


def test_update_validates_constraints(client, store):
    created = client.post(
        "/api/footer-links",
        json={"url": "/dubai-marina", "heading": "Dubai Marina", "section": "Explore"},
    ).json()

    resp = client.put(f"/api/footer-links/{created['id']}", json={"priority": 0})

    assert resp.status_code == 422


def test_footer_link_section_must_be_known(client, store):
    resp = client.post(
        "/api/footer-links",
        json={"url": "/x", "heading": "X", "section": "Elsewhere", "priority": 2},
    )

    assert resp.status_code == 422


def test_update_does_not_null_required_columns(client, store):
    created = client.post("/api/agents", json={"name": "Jane", "email": "jane@nordstern.ae"}).json()

    resp = client.put(f"/api/agents/{created['id']}", json={"name": None, "phone": None})

    assert resp.status_code == 200
    assert resp.json()["name"] == "Jane"


def test_article_slug_lookup(anon_client, client, store):
    client.post("/api/articles", json={"slug": "market-update", "title": "Market update"})

    found = anon_client.get("/api/articles", params={"slug": "market-update"})
    missing = anon_client.get("/api/articles", params={"slug": "nope"})

    assert found.status_code == 200
    assert found.json()["title"] == "Market update"
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Article not found for slug: nope"


def test_article_duplicate_slug_is_409(client, store):
    client.post("/api/articles", json={"slug": "guide", "title": "Guide"})

    resp = client.post("/api/articles", json={"slug": "guide", "title": "Guide again"})

    assert resp.status_code == 409


def test_article_filters_by_category(anon_client, client, store):
    client.post("/api/articles", json={"slug": "a", "title": "A", "category": "News"})
    client.post("/api/articles", json={"slug": "b", "title": "B", "category": "Guides"})

    resp = anon_client.get("/api/articles", params={"category": "News", "ignored": "x"})

    assert [item["slug"] for item in resp.json()["items"]] == ["a"]
    assert store.list_calls[-1]["filters"] == {"category": "News"}


def test_enquiry_create_is_public_but_listing_is_not(anon_client, client, store):
    created = anon_client.post(
        "/api/enquiries",
        json={"email": "buyer@example.com", "name": "Buyer", "property_reference": "NS-1"},
    )

    assert created.status_code == 201
    assert anon_client.get("/api/enquiries").status_code == 401
    assert client.get("/api/enquiries").json()["count"] == 1


def test_enquiry_mark_read(client, store):
    enquiry = client.post("/api/enquiries", json={"email": "buyer@example.com"}).json()

    resp = client.put(f"/api/enquiries/{enquiry['id']}/read")

    assert resp.status_code == 200
    assert resp.json()["is_read"] is True
    assert client.put("/api/enquiries/999/read").status_code == 404


def test_not_null_columns_follow_create_model():
    blocked = service.not_null_columns(resources.AGENTS)

    assert {"name", "email"} <= blocked
    assert "phone" not in blocked


def test_partial_update_model_is_all_optional():
    model = schemas.ArticleUpdate.model_validate({})

    assert model.model_dump(exclude_unset=True) == {}


def test_repository_where_clause_ignores_unknown_filters():
    where, args = repository.build_where(
        resources.ARTICLES,
        q="dubai",
        filters={"category": "News", "slug; DROP TABLE": "x"},
    )

    assert where.startswith("WHERE category = $1 AND (")
    assert "title ILIKE '%' || $2 || '%'" in where
    assert args == ["News", "dubai"]
