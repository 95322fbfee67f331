"""
Property CRUD endpoints.

Reads are public (the marketing site consumes them); writes need a bearer token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from auth import dependencies as auth_dependencies

from . import schemas, service

router = APIRouter()


def property_filters(
    reference: str | None = Query(default=None),
    listing_type: schemas.ListingType | None = Query(default=None),
    property_type: str | None = Query(default=None),
    community: str | None = Query(default=None),
    property_status: schemas.PropertyStatus | None = Query(default=None),
    is_featured: bool | None = Query(default=None),
    is_disabled: bool | None = Query(default=None),
    min_price: int | None = Query(default=None, ge=0),
    max_price: int | None = Query(default=None, ge=0),
    bedrooms: int | None = Query(default=None, ge=0),
) -> schemas.PropertyFilters:
    return schemas.PropertyFilters(
        reference=reference,
        listing_type=listing_type,
        property_type=property_type,
        community=community,
        property_status=property_status,
        is_featured=is_featured,
        is_disabled=is_disabled,
        min_price=min_price,
        max_price=max_price,
        bedrooms=bedrooms,
    )


@router.get("/properties", response_model=schemas.PropertyPage)
async def list_properties(
    filters: schemas.PropertyFilters = Depends(property_filters),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=service.MAX_PAGE_SIZE),
) -> schemas.PropertyPage:
    return await service.list_properties(filters, page=page, page_size=page_size)


@router.get("/properties/by-reference/{reference}", response_model=schemas.PropertyResponse)
async def get_property_by_reference(reference: str) -> schemas.PropertyResponse:
    return await service.get_property_by_reference(reference)


@router.get("/properties/{property_id}", response_model=schemas.PropertyResponse)
async def get_property(property_id: int) -> schemas.PropertyResponse:
    return await service.get_property(property_id)


@router.post("/properties", status_code=status.HTTP_201_CREATED, response_model=schemas.PropertyResponse)
async def create_property(
    payload: schemas.PropertyCreate,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> schemas.PropertyResponse:
    return await service.create_property(payload)


@router.put("/properties/{property_id}", response_model=schemas.PropertyResponse)
async def update_property(
    property_id: int,
    payload: schemas.PropertyUpdate,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> schemas.PropertyResponse:
    return await service.update_property(property_id, payload)


@router.delete("/properties/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_property(
    property_id: int,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> Response:
    await service.delete_property(property_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
