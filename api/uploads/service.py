"""
Upload "service layer".

Logic here is independent of FastAPI's routing layer:
- Validate uploads (extension + declared content type)
- Read file bytes with a size limit
- Push the bytes to object storage
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fastapi import HTTPException, UploadFile

from core import object_storage
from core.settings import max_upload_bytes

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".avif"}
DOCUMENT_EXTENSIONS = {".pdf"}
ALLOWED_EXTENSIONS = IMAGE_EXTENSIONS | DOCUMENT_EXTENSIONS

DEFAULT_FOLDER = "uploads"


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str | None
    file_ext: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def _file_ext(filename: str) -> str:
    return Path(filename).suffix.lower()


def validate_upload(file: UploadFile, *, allowed: set[str]) -> str:
    """
    Return the normalized file extension if this upload is acceptable.

    The extension is authoritative because browsers send unreliable
    `content_type` values for some formats (e.g. svg, avif).
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename.")

    ext = _file_ext(file.filename)
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: {sorted(allowed)}",
        )
    return ext


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, enforcing a maximum size.
    """
    chunk_size = 1024 * 1024  # 1 MiB
    buf = bytearray()

    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Max is {max_bytes} bytes.",
            )

    if not buf:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    return bytes(buf)


async def read_upload(file: UploadFile, *, allowed: set[str] = ALLOWED_EXTENSIONS) -> UploadedFile:
    ext = validate_upload(file, allowed=allowed)
    data = await read_upload_bytes(file, max_bytes=max_upload_bytes())
    return UploadedFile(
        filename=file.filename or "",
        content_type=file.content_type,
        file_ext=ext,
        data=data,
    )


async def read_image_upload(file: UploadFile) -> UploadedFile:
    content_type = (file.content_type or "").lower()
    if content_type and not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image files are allowed.")
    return await read_upload(file, allowed=IMAGE_EXTENSIONS)


def normalize_folder(folder: str | None) -> str:
    cleaned = "/".join(part for part in (folder or "").strip().split("/") if part and part not in (".", ".."))
    return cleaned or DEFAULT_FOLDER


async def store_upload(file: UploadFile, *, folder: str | None = None) -> dict:
    """
    Validate, read and store one upload. Returns the public URL and metadata.
    """
    upload = await read_upload(file)
    try:
        stored = await object_storage.upload_bytes(
            upload.data,
            filename=upload.filename,
            folder=normalize_folder(folder),
            content_type=upload.content_type,
        )
    except object_storage.ObjectStorageError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return {
        "url": stored["url"],
        "public_id": stored["public_id"],
        "filename": upload.filename,
        "content_type": upload.content_type,
        "size_bytes": upload.size_bytes,
    }
