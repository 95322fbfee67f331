"""Shared pytest fixtures.

Nothing here touches Postgres: repositories and the import advisory lock are
swapped for in-memory fakes with monkeypatch, and the auth dependency is
overridden for admin routes. The SQL itself is covered by
test_properties_repository.py when TEST_DATABASE_URL is set.
"""

from __future__ import annotations

import itertools
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from auth import dependencies as auth_dependencies
from importer import repository as import_repository
from main import app
from properties import repository as properties_repository

ADMIN_USER: dict[str, Any] = {
    "id": 1,
    "email": "admin@nordstern.ae",
    "first_name": "Ada",
    "last_name": "Admin",
    "profile_image": None,
    "password_hash": "",
    "is_active": True,
    "is_verified": True,
    "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
}


def make_feed(*records: str) -> str:
    return "<list>" + "".join(records) + "</list>"


def make_record(reference: str | None, title: str = "Marina View Apartment", **extra: str) -> str:
    parts = []
    if reference is not None:
        parts.append(f"<reference_number>{reference}</reference_number>")
    if title:
        parts.append(f"<title_en>{title}</title_en>")
    for tag, value in extra.items():
        parts.append(f"<{tag}>{value}</{tag}>")
    return "<property>" + "".join(parts) + "</property>"


class FakePropertyStore:
    """In-memory stand-in for the properties table (reference is unique)."""

    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self._ids = itertools.count(1)

    def add(self, reference: str, *, row_id: int | None = None, **values: Any) -> dict[str, Any]:
        row_id = row_id if row_id is not None else next(self._ids)
        row = {"id": row_id, "reference": reference, **values}
        self.rows[row_id] = row
        return row

    def references(self) -> list[str]:
        return sorted(row["reference"] for row in self.rows.values())

    async def upsert_property(self, values: dict[str, Any]) -> dict[str, Any]:
        for row in self.rows.values():
            if row["reference"] == values["reference"]:
                row.update({k: v for k, v in values.items() if k in properties_repository.FEED_OWNED_COLUMNS})
                return {"id": row["id"], "reference": row["reference"], "inserted": False}
        row = self.add(values["reference"], **{k: v for k, v in values.items() if k != "reference"})
        return {"id": row["id"], "reference": row["reference"], "inserted": True}

    async def list_id_reference_pairs(self) -> list[dict[str, Any]]:
        return [{"id": r["id"], "reference": r["reference"]} for r in sorted(self.rows.values(), key=lambda r: r["id"])]

    async def delete_properties_by_ids(self, ids: list[int]) -> list[int]:
        deleted = sorted(i for i in ids if i in self.rows)
        for row_id in deleted:
            del self.rows[row_id]
        return deleted

    async def delete_properties_not_in(self, references: list[str]) -> list[str]:
        keep = set(references)
        gone = [row_id for row_id, row in self.rows.items() if row["reference"] not in keep]
        deleted = sorted(self.rows[row_id]["reference"] for row_id in gone)
        for row_id in gone:
            del self.rows[row_id]
        return deleted


class FakeRunStore:
    """In-memory stand-in for the import_runs table."""

    def __init__(self) -> None:
        self.runs: dict[int, dict[str, Any]] = {}
        self._ids = itertools.count(1)

    async def start_run(self, *, source: str, trigger: str) -> int:
        run_id = next(self._ids)
        self.runs[run_id] = {
            "id": run_id,
            "source": source,
            "trigger": trigger,
            "started_at": datetime.now(timezone.utc),
            "finished_at": None,
        }
        return run_id

    async def finish_run(self, run_id: int, **fields: Any) -> dict[str, Any]:
        self.runs[run_id].update(fields, finished_at=datetime.now(timezone.utc))
        return self.runs[run_id]

    async def last_finished_run(self) -> dict[str, Any] | None:
        finished = [r for r in self.runs.values() if r["finished_at"] is not None]
        return max(finished, key=lambda r: r["finished_at"]) if finished else None

    async def list_runs(self, *, limit: int = 20) -> list[dict[str, Any]]:
        return sorted(self.runs.values(), key=lambda r: r["id"], reverse=True)[:limit]


@pytest.fixture
def property_store(monkeypatch: pytest.MonkeyPatch) -> FakePropertyStore:
    store = FakePropertyStore()
    for name in ("upsert_property", "list_id_reference_pairs", "delete_properties_by_ids", "delete_properties_not_in"):
        monkeypatch.setattr(properties_repository, name, getattr(store, name))
    return store


@pytest.fixture
def run_store(monkeypatch: pytest.MonkeyPatch) -> FakeRunStore:
    store = FakeRunStore()
    for name in ("start_run", "finish_run", "last_finished_run", "list_runs"):
        monkeypatch.setattr(import_repository, name, getattr(store, name))
    return store


class FakeAdvisoryLock:
    """Postgres advisory lock stand-in; `held_elsewhere` mimics another worker."""

    def __init__(self) -> None:
        self.held_elsewhere = False
        self.acquisitions = 0

    @asynccontextmanager
    async def __call__(self, key: int = import_repository.IMPORT_LOCK_KEY):
        if self.held_elsewhere:
            yield False
            return
        self.acquisitions += 1
        yield True


@pytest.fixture(autouse=True)
def advisory_lock(monkeypatch: pytest.MonkeyPatch) -> FakeAdvisoryLock:
    lock = FakeAdvisoryLock()
    monkeypatch.setattr(import_repository, "advisory_lock", lock)
    return lock


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("PROPERTY_FEED_URL", "https://feed.test/property_finder.xml")
    monkeypatch.setenv("FRONTEND_URL", "https://admin.test")
    for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET", "SENDGRID_API_KEY"):
        monkeypatch.delenv(name, raising=False)


class _AnonTestClient(TestClient):
    """Sends requests without the admin override the `client` fixture installs on the shared app."""

    def request(self, *args: Any, **kwargs: Any):
        saved = app.dependency_overrides.pop(auth_dependencies.get_current_user, None)
        try:
            return super().request(*args, **kwargs)
        finally:
            if saved is not None:
                app.dependency_overrides[auth_dependencies.get_current_user] = saved


@pytest.fixture
def anon_client() -> TestClient:
    # No context manager: the lifespan (DB pool, scheduler) must not run.
    return _AnonTestClient(app)


@pytest.fixture
def client() -> TestClient:
    async def _admin() -> dict:
        return ADMIN_USER

    app.dependency_overrides[auth_dependencies.get_current_user] = _admin
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(auth_dependencies.get_current_user, None)
