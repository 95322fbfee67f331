"""
Property business logic for the admin CRUD endpoints.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg
from fastapi import HTTPException

from . import repository, schemas

MAX_PAGE_SIZE = 200

# Columns a partial update may not clear with an explicit null.
NOT_NULL_COLUMNS = frozenset(
    {
        "reference",
        "listing_type",
        "property_type",
        "community",
        "region",
        "country",
        "price",
        "currency",
        "property_status",
        "title",
        "is_exclusive",
        "is_featured",
        "is_fitted",
        "is_furnished",
        "images",
        "is_disabled",
        "sold",
    }
)

logger = logging.getLogger(__name__)


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Property not found.")


def _duplicate_reference(reference: str | None) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=f"A property with reference '{reference}' already exists.",
    )


async def list_properties(
    filters: schemas.PropertyFilters,
    *,
    page: int = 1,
    page_size: int = 50,
) -> schemas.PropertyPage:
    page = max(page, 1)
    page_size = max(1, min(page_size, MAX_PAGE_SIZE))
    rows, total = await repository.list_properties(
        filters=filters.model_dump(mode="json", exclude_none=True),
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    return schemas.PropertyPage(
        items=[schemas.PropertyResponse.model_validate(row) for row in rows],
        page=page,
        page_size=page_size,
        total=total,
    )


async def get_property(property_id: int) -> schemas.PropertyResponse:
    row = await repository.get_property(property_id)
    if row is None:
        raise _not_found()
    return schemas.PropertyResponse.model_validate(row)


async def get_property_by_reference(reference: str) -> schemas.PropertyResponse:
    row = await repository.get_property_by_reference(reference.strip())
    if row is None:
        raise _not_found()
    return schemas.PropertyResponse.model_validate(row)


async def create_property(payload: schemas.PropertyCreate) -> schemas.PropertyResponse:
    values: dict[str, Any] = payload.model_dump(mode="json")
    try:
        row = await repository.create_property(values)
    except asyncpg.UniqueViolationError as exc:
        raise _duplicate_reference(payload.reference) from exc
    logger.info("property_created id=%s reference=%s", row["id"], row["reference"])
    return schemas.PropertyResponse.model_validate(row)


async def update_property(property_id: int, payload: schemas.PropertyUpdate) -> schemas.PropertyResponse:
    changes: dict[str, Any] = {
        key: value
        for key, value in payload.model_dump(mode="json", exclude_unset=True).items()
        if value is not None or key not in NOT_NULL_COLUMNS
    }
    try:
        row = await repository.update_property(property_id, changes)
    except asyncpg.UniqueViolationError as exc:
        raise _duplicate_reference(changes.get("reference")) from exc
    if row is None:
        raise _not_found()
    return schemas.PropertyResponse.model_validate(row)


async def delete_property(property_id: int) -> None:
    if not await repository.delete_property(property_id):
        raise _not_found()
    logger.info("property_deleted id=%s", property_id)
