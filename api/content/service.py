"""
Content CRUD logic shared by every resource.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg
from fastapi import HTTPException
from pydantic import BaseModel

from . import repository
from .resources import ENQUIRIES, Resource

MAX_LIMIT = 500

logger = logging.getLogger(__name__)


def _not_found(resource: Resource) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{resource.label} not found.")


def _conflict(resource: Resource) -> HTTPException:
    fields = ", ".join(resource.unique_columns) or "unique field"
    return HTTPException(status_code=409, detail=f"{resource.label} with this {fields} already exists.")


def not_null_columns(resource: Resource) -> set[str]:
    """
    Columns that a partial update may not set to null.
    """
    return {
        name
        for name, info in resource.create_model.model_fields.items()
        if info.is_required() or info.default is not None
    }


async def list_items(
    resource: Resource,
    *,
    q: str | None = None,
    filters: dict[str, Any] | None = None,
    limit: int = 100,
    offset: int = 0,
) -> dict[str, Any]:
    limit = max(1, min(limit, MAX_LIMIT))
    offset = max(offset, 0)
    items = await repository.list_items(resource, q=q, filters=filters, limit=limit, offset=offset)
    return {"items": items, "limit": limit, "offset": offset, "count": len(items)}


async def lookup_item(resource: Resource, value: str) -> dict[str, Any]:
    column = resource.lookup_column
    if column is None:
        raise HTTPException(status_code=400, detail=f"{resource.label} does not support lookups.")
    row = await repository.get_item_by(resource, column, value.strip())
    if row is None:
        raise HTTPException(status_code=404, detail=f"{resource.label} not found for {column}: {value}")
    return row


async def get_item(resource: Resource, item_id: int) -> dict[str, Any]:
    row = await repository.get_item(resource, item_id)
    if row is None:
        raise _not_found(resource)
    return row


async def create_item(resource: Resource, payload: BaseModel) -> dict[str, Any]:
    try:
        row = await repository.create_item(resource, payload.model_dump(mode="json"))
    except asyncpg.UniqueViolationError as exc:
        raise _conflict(resource) from exc
    logger.info("content_created table=%s id=%s", resource.table, row["id"])
    return row


async def update_item(resource: Resource, item_id: int, payload: BaseModel) -> dict[str, Any]:
    blocked = not_null_columns(resource)
    changes = {
        key: value
        for key, value in payload.model_dump(mode="json", exclude_unset=True).items()
        if value is not None or key not in blocked
    }
    try:
        row = await repository.update_item(resource, item_id, changes)
    except asyncpg.UniqueViolationError as exc:
        raise _conflict(resource) from exc
    if row is None:
        raise _not_found(resource)
    return row


async def delete_item(resource: Resource, item_id: int) -> None:
    if not await repository.delete_item(resource, item_id):
        raise _not_found(resource)
    logger.info("content_deleted table=%s id=%s", resource.table, item_id)


async def mark_enquiry_read(item_id: int, *, is_read: bool = True) -> dict[str, Any]:
    row = await repository.update_item(ENQUIRIES, item_id, {"is_read": is_read})
    if row is None:
        raise _not_found(ENQUIRIES)
    return row
