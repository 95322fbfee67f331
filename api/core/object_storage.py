"""
Object storage client (Cloudinary upload REST API).

Used endpoint:
- POST /v1_1/{cloud_name}/auto/upload  -> {"secure_url": "...", "public_id": "..."}

Uploads are signed: sha1 of the sorted, `&`-joined upload params followed by
the API secret.
"""

from __future__ import annotations

import hashlib
import time
from typing import Any

import httpx

from .settings import env_str

DEFAULT_API_BASE_URL = "https://api.cloudinary.com"


class ObjectStorageError(RuntimeError):
    pass


def api_base_url() -> str:
    return env_str("CLOUDINARY_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/")


def _credentials() -> tuple[str, str, str]:
    cloud_name = env_str("CLOUDINARY_CLOUD_NAME")
    api_key = env_str("CLOUDINARY_API_KEY")
    api_secret = env_str("CLOUDINARY_API_SECRET")
    if not (cloud_name and api_key and api_secret):
        raise ObjectStorageError("Object storage is not configured (CLOUDINARY_* env vars).")
    return cloud_name, api_key, api_secret


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


async def upload_bytes(
    data: bytes,
    *,
    filename: str,
    folder: str = "",
    content_type: str | None = None,
    timeout_s: float = 60.0,
) -> dict[str, str]:
    """
    Upload a file and return {"url": <https url>, "public_id": <storage id>}.
    """
    if not data:
        raise ObjectStorageError("Refusing to upload an empty file.")

    cloud_name, api_key, api_secret = _credentials()
    params: dict[str, Any] = {"timestamp": int(time.time())}
    if folder:
        params["folder"] = folder
    signature = sign_params(params, api_secret)

    form = {key: str(value) for key, value in params.items()}
    form["api_key"] = api_key
    form["signature"] = signature

    files = {"file": (filename or "upload", data, content_type or "application/octet-stream")}

    try:
        async with httpx.AsyncClient(base_url=api_base_url(), timeout=timeout_s) as client:
            resp = await client.post(f"/v1_1/{cloud_name}/auto/upload", data=form, files=files)
    except httpx.HTTPError as exc:
        raise ObjectStorageError(f"Object storage request failed: {exc}") from exc

    if resp.status_code != 200:
        body = resp.text[:500]
        raise ObjectStorageError(f"Object storage upload failed: {resp.status_code} {body}")

    payload: dict[str, Any] = resp.json()
    url = payload.get("secure_url") or payload.get("url")
    if not isinstance(url, str) or not url:
        raise ObjectStorageError("Object storage returned no URL.")

    return {"url": url, "public_id": str(payload.get("public_id") or "")}
