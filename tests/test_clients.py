"""Outbound HTTP clients, stubbed at the httpx transport layer with respx."""

import hashlib

import httpx
import pytest
import respx

from core import mailer, object_storage
from importer import feed

UPLOAD_URL = "https://api.cloudinary.com/v1_1/demo/auto/upload"


@pytest.fixture
def cloudinary_env(monkeypatch):
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key-123")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "shh")


def test_sign_params_sorts_and_skips_empty_values():
    signature = object_storage.sign_params({"timestamp": 100, "folder": "brochures", "tags": ""}, "shh")

    assert signature == hashlib.sha1(b"folder=brochures&timestamp=100shh").hexdigest()


@respx.mock
async def test_upload_bytes_returns_secure_url(cloudinary_env):
    route = respx.post(UPLOAD_URL).mock(
        return_value=httpx.Response(200, json={"secure_url": "https://res.cloudinary.com/demo/a.png", "public_id": "a"})
    )

    stored = await object_storage.upload_bytes(b"\x89PNG", filename="a.png", folder="images", content_type="image/png")

    assert stored == {"url": "https://res.cloudinary.com/demo/a.png", "public_id": "a"}
    assert route.calls.last.request.headers["Content-Type"].startswith("multipart/form-data")


async def test_upload_bytes_requires_configuration():
    with pytest.raises(object_storage.ObjectStorageError, match="not configured"):
        await object_storage.upload_bytes(b"x", filename="a.png")


@respx.mock
async def test_upload_bytes_surfaces_upstream_errors(cloudinary_env):
    respx.post(UPLOAD_URL).mock(return_value=httpx.Response(401, json={"error": {"message": "Invalid Signature"}}))

    with pytest.raises(object_storage.ObjectStorageError, match="401"):
        await object_storage.upload_bytes(b"x", filename="a.png")


@respx.mock
async def test_send_email_posts_to_sendgrid(monkeypatch):
    monkeypatch.setenv("SENDGRID_API_KEY", "SG.key")
    route = respx.post("https://api.sendgrid.com/v3/mail/send").mock(return_value=httpx.Response(202))

    await mailer.send_email(to="a@b.ae", subject="Hi", text="plain", html="<p>html</p>")

    request = route.calls.last.request
    assert request.headers["Authorization"] == "Bearer SG.key"


async def test_send_email_without_key_fails():
    with pytest.raises(mailer.MailerError):
        await mailer.send_email(to="a@b.ae", subject="Hi", text="plain")


@respx.mock
async def test_fetch_feed_follows_redirects_and_sends_accept_header():
    respx.get("https://feed.test/property_finder.xml").mock(
        return_value=httpx.Response(301, headers={"Location": "https://cdn.feed.test/pf.xml"})
    )
    final = respx.get("https://cdn.feed.test/pf.xml").mock(return_value=httpx.Response(200, text="<list/>"))

    text = await feed.fetch_feed()

    assert text == "<list/>"
    assert "application/xml" in final.calls.last.request.headers["Accept"]


@respx.mock
async def test_fetch_feed_network_error():
    respx.get("https://feed.test/property_finder.xml").mock(side_effect=httpx.ReadTimeout("slow"))

    with pytest.raises(feed.FeedFetchError):
        await feed.fetch_feed()
