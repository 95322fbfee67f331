"""
FastAPI router for file uploads (images, brochures) to object storage.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from auth import dependencies as auth_dependencies

from . import service

router = APIRouter()


@router.post("/uploads", status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    folder: str | None = Form(default=None),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    """
    Store an image or PDF brochure and return its public URL.
    """
    return await service.store_upload(file, folder=folder)
