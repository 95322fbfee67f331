"""
FastAPI routers for the content resources.

`build_router()` turns one `Resource` into GET list / GET one / POST / PUT /
DELETE endpoints. Request models are bound at build time, so this module
keeps real (non-string) annotations.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, Response, status

from auth import dependencies as auth_dependencies

from . import service
from .resources import ENQUIRIES, RESOURCES, Resource

_REQUIRE_USER = [Depends(auth_dependencies.get_current_user)]


def build_router(resource: Resource) -> APIRouter:
    sub = APIRouter(prefix=resource.path)
    create_model = resource.create_model
    update_model = resource.update_model
    read_deps = [] if resource.public_read else _REQUIRE_USER
    create_deps = [] if resource.public_create else _REQUIRE_USER

    @sub.get("", name=f"list_{resource.table}", dependencies=read_deps)
    async def list_items(
        request: Request,
        q: str | None = Query(default=None, max_length=200),
        limit: int = Query(100, ge=1, le=service.MAX_LIMIT),
        offset: int = Query(0, ge=0),
    ) -> Any:
        if resource.lookup_column:
            value = request.query_params.get(resource.lookup_column, "").strip()
            if value:
                return await service.lookup_item(resource, value)
        filters = {
            column: request.query_params[column]
            for column in resource.filter_columns
            if request.query_params.get(column)
        }
        return await service.list_items(resource, q=q, filters=filters, limit=limit, offset=offset)

    @sub.get("/{item_id}", name=f"get_{resource.table}", dependencies=read_deps)
    async def get_item(item_id: int) -> dict:
        return await service.get_item(resource, item_id)

    @sub.post("", name=f"create_{resource.table}", status_code=status.HTTP_201_CREATED, dependencies=create_deps)
    async def create_item(payload: create_model) -> dict:  # type: ignore[valid-type]
        return await service.create_item(resource, payload)

    @sub.put("/{item_id}", name=f"update_{resource.table}", dependencies=_REQUIRE_USER)
    async def update_item(item_id: int, payload: update_model) -> dict:  # type: ignore[valid-type]
        return await service.update_item(resource, item_id, payload)

    @sub.delete("/{item_id}", name=f"delete_{resource.table}", status_code=status.HTTP_204_NO_CONTENT, dependencies=_REQUIRE_USER)
    async def delete_item(item_id: int) -> Response:
        await service.delete_item(resource, item_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return sub


router = APIRouter()

enquiries_extra = APIRouter(prefix=ENQUIRIES.path)


@enquiries_extra.put("/{item_id}/read", dependencies=_REQUIRE_USER)
async def mark_enquiry_read(item_id: int, is_read: bool = Query(True)) -> dict:
    return await service.mark_enquiry_read(item_id, is_read=is_read)


router.include_router(enquiries_extra)
for _resource in RESOURCES:
    router.include_router(build_router(_resource), tags=[_resource.table])
