"""
Import and deduplication endpoints.

GET  /import-properties          import from the remote feed
POST /import-properties          import the XML in the request body (remote feed if none)
GET  /import-properties/status   auto-refresh countdown
GET  /import-properties/runs     recent import runs
POST /properties/deduplicate     remove duplicate rows per reference
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from auth import dependencies as auth_dependencies

from . import deduplication, repository, service
from .scheduler import ImportInProgress, scheduler

router = APIRouter()


async def _run(xml_text: str | None, *, prune: bool) -> dict:
    try:
        result = await scheduler.trigger(xml_text, prune=prune, trigger="manual")
    except ImportInProgress as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except service.ImportFailure as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.as_detail()) from exc
    return result.as_response()


@router.get("/import-properties")
async def import_from_feed(
    prune: bool = Query(False),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await _run(None, prune=prune)


@router.post("/import-properties")
async def import_from_body(
    request: Request,
    prune: bool = Query(False),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    body = (await request.body()).decode("utf-8", errors="replace")
    return await _run(body or None, prune=prune)


@router.get("/import-properties/status")
async def import_status(_: dict = Depends(auth_dependencies.get_current_user)) -> dict:
    return await scheduler.status()


@router.get("/import-properties/runs")
async def import_runs(
    limit: int = Query(20, ge=1, le=100),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    runs = await repository.list_runs(limit=limit)
    return {"runs": runs, "count": len(runs)}


@router.post("/properties/deduplicate")
async def deduplicate_properties(_: dict = Depends(auth_dependencies.get_current_user)) -> dict:
    # Shares the import lock so a re-import cannot race the cleanup.
    try:
        return await scheduler.exclusive(deduplication.deduplicate)
    except ImportInProgress as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
