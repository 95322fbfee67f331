"""Upload endpoint and the profile image upload."""

import pytest

from core import object_storage
from uploads import service


@pytest.fixture
def stored(monkeypatch):
    calls = []

    async def fake_upload(data, *, filename, folder="", content_type=None, timeout_s=60.0):
        calls.append({"size": len(data), "filename": filename, "folder": folder, "content_type": content_type})
        return {"url": f"https://res.cloudinary.com/demo/{folder}/{filename}", "public_id": f"{folder}/{filename}"}

    monkeypatch.setattr(object_storage, "upload_bytes", fake_upload)
    return calls


def test_upload_requires_auth(anon_client, stored):
    resp = anon_client.post("/api/uploads", files={"file": ("a.png", b"img", "image/png")})

    assert resp.status_code == 401


def test_upload_image(client, stored):
    resp = client.post(
        "/api/uploads",
        files={"file": ("tower.jpg", b"jpeg-bytes", "image/jpeg")},
        data={"folder": "properties/../NS-1"},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["url"] == "https://res.cloudinary.com/demo/properties/NS-1/tower.jpg"
    assert body["size_bytes"] == len(b"jpeg-bytes")
    assert stored[0]["folder"] == "properties/NS-1"


def test_upload_pdf_brochure_default_folder(client, stored):
    resp = client.post("/api/uploads", files={"file": ("brochure.pdf", b"%PDF-1.7", "application/pdf")})

    assert resp.status_code == 201
    assert stored[0]["folder"] == service.DEFAULT_FOLDER


def test_upload_rejects_unknown_extension(client, stored):
    resp = client.post("/api/uploads", files={"file": ("run.exe", b"MZ", "application/octet-stream")})

    assert resp.status_code == 400
    assert stored == []


def test_upload_rejects_empty_file(client, stored):
    resp = client.post("/api/uploads", files={"file": ("a.png", b"", "image/png")})

    assert resp.status_code == 400


def test_upload_enforces_size_limit(client, stored, monkeypatch):
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "10")

    resp = client.post("/api/uploads", files={"file": ("a.png", b"x" * 11, "image/png")})

    assert resp.status_code == 413


def test_storage_failure_is_502(client, monkeypatch):
    async def broken(*args, **kwargs):
        raise object_storage.ObjectStorageError("Object storage upload failed: 500")

    monkeypatch.setattr(object_storage, "upload_bytes", broken)

    resp = client.post("/api/uploads", files={"file": ("a.png", b"img", "image/png")})

    assert resp.status_code == 502


def test_profile_image_upload_saves_url(client, stored, monkeypatch):
    from auth import repository as auth_repository

    from conftest import ADMIN_USER

    async def update_user_profile(user_id, **fields):
        return {**ADMIN_USER, "profile_image": fields["profile_image"]}

    monkeypatch.setattr(auth_repository, "update_user_profile", update_user_profile)

    resp = client.post("/api/auth/upload-profile-image", files={"image": ("me.png", b"png", "image/png")})

    assert resp.status_code == 200
    assert resp.json()["image_url"].endswith("/profile-images/me.png")
    assert resp.json()["user"]["profile_image"] == resp.json()["image_url"]


def test_profile_image_must_be_an_image(client, stored):
    resp = client.post("/api/auth/upload-profile-image", files={"image": ("cv.pdf", b"%PDF", "application/pdf")})

    assert resp.status_code == 400


def test_normalize_folder():
    assert service.normalize_folder(None) == "uploads"
    assert service.normalize_folder("/a//b/./") == "a/b"
