"""
Duplicate property cleanup.

Rows are grouped by `reference`; in every group with more than one row the
highest id (the most recently inserted) is kept and the rest are deleted in
one transaction.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import asyncpg
from fastapi import HTTPException

from properties import repository as properties_repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeduplicationPlan:
    groups: int = 0
    keep_ids: list[int] = field(default_factory=list)
    delete_ids: list[int] = field(default_factory=list)


def plan_deduplication(rows: Iterable[Mapping[str, Any]]) -> DeduplicationPlan:
    by_reference: dict[str, list[int]] = defaultdict(list)
    for row in rows:
        by_reference[str(row["reference"])].append(int(row["id"]))

    keep: list[int] = []
    delete: list[int] = []
    groups = 0
    for ids in by_reference.values():
        if len(ids) < 2:
            continue
        groups += 1
        ordered = sorted(ids, reverse=True)
        keep.append(ordered[0])
        delete.extend(ordered[1:])

    return DeduplicationPlan(groups=groups, keep_ids=sorted(keep), delete_ids=sorted(delete))


async def deduplicate() -> dict[str, Any]:
    rows = await properties_repository.list_id_reference_pairs()
    plan = plan_deduplication(rows)
    if not plan.delete_ids:
        return {
            "message": "No duplicate properties found",
            "groups": 0,
            "duplicates": 0,
            "deleted_ids": [],
            "kept_ids": [],
        }

    try:
        deleted = await properties_repository.delete_properties_by_ids(plan.delete_ids)
    except (asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
        logger.exception("deduplicate_failed duplicates=%s", len(plan.delete_ids))
        raise HTTPException(status_code=500, detail="Deduplication failed; no rows were deleted.") from exc

    logger.info("deduplicate_finished groups=%s deleted=%s", plan.groups, len(deleted))
    return {
        "message": f"Removed {len(deleted)} duplicate properties",
        "groups": plan.groups,
        "duplicates": len(plan.delete_ids),
        "deleted_ids": deleted,
        "kept_ids": plan.keep_ids,
    }
