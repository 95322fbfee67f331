"""
Generic persistence for the content tables.

Table and column names always come from the `Resource` definitions in
`resources.py`, never from request input; only values are parameterized.
"""

from __future__ import annotations

from typing import Any

from core import db

from .resources import Resource


def _select(resource: Resource) -> str:
    return ", ".join(("id", *resource.columns, "created_at", "updated_at"))


def build_where(
    resource: Resource,
    *,
    q: str | None = None,
    filters: dict[str, Any] | None = None,
) -> tuple[str, list[Any]]:
    conditions: list[str] = []
    args: list[Any] = []

    for column, value in (filters or {}).items():
        if column not in resource.filter_columns or value is None:
            continue
        args.append(value)
        conditions.append(f"{column} = ${len(args)}")

    term = (q or "").strip()
    if term and resource.search_columns:
        args.append(term)
        n = len(args)
        matches = " OR ".join(f"{column} ILIKE '%' || ${n} || '%'" for column in resource.search_columns)
        conditions.append(f"({matches})")

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    return where, args


async def list_items(
    resource: Resource,
    *,
    q: str | None = None,
    filters: dict[str, Any] | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[dict[str, Any]]:
    where, args = build_where(resource, q=q, filters=filters)
    return await db.fetch_all(
        f"""
        SELECT {_select(resource)}
        FROM {resource.table}
        {where}
        ORDER BY {resource.order_by}
        LIMIT ${len(args) + 1}
        OFFSET ${len(args) + 2}
        """,
        *args,
        limit,
        offset,
    )


async def get_item(resource: Resource, item_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"SELECT {_select(resource)} FROM {resource.table} WHERE id = $1",
        item_id,
    )


async def get_item_by(resource: Resource, column: str, value: Any) -> dict[str, Any] | None:
    if column not in resource.columns:
        raise ValueError(f"Unknown column '{column}' for {resource.table}.")
    return await db.fetch_one(
        f"SELECT {_select(resource)} FROM {resource.table} WHERE {column} = $1 ORDER BY id DESC LIMIT 1",
        value,
    )


async def create_item(resource: Resource, values: dict[str, Any]) -> dict[str, Any]:
    columns = [column for column in resource.columns if column in values]
    placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
    row = await db.fetch_one(
        f"""
        INSERT INTO {resource.table} ({", ".join(columns)})
        VALUES ({placeholders})
        RETURNING {_select(resource)}
        """,
        *[values[column] for column in columns],
    )
    if row is None:
        raise RuntimeError(f"Failed to insert into {resource.table}.")
    return row


async def update_item(resource: Resource, item_id: int, changes: dict[str, Any]) -> dict[str, Any] | None:
    columns = [column for column in resource.columns if column in changes]
    if not columns:
        return await get_item(resource, item_id)

    assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(columns, start=2))
    return await db.fetch_one(
        f"""
        UPDATE {resource.table}
        SET {assignments},
            updated_at = now()
        WHERE id = $1
        RETURNING {_select(resource)}
        """,
        item_id,
        *[changes[column] for column in columns],
    )


async def delete_item(resource: Resource, item_id: int) -> bool:
    status = await db.execute(f"DELETE FROM {resource.table} WHERE id = $1", item_id)
    return db.affected_rows(status) > 0
