"""
Property persistence (raw SQL).

`reference` is the business key and is UNIQUE in the schema, so the import
pipeline can upsert atomically with `ON CONFLICT (reference)`.
"""

from __future__ import annotations

from typing import Any

from core import db

WRITABLE_COLUMNS: tuple[str, ...] = (
    "reference",
    "listing_type",
    "property_type",
    "sub_community",
    "community",
    "region",
    "country",
    "agent",
    "price",
    "currency",
    "bedrooms",
    "bathrooms",
    "property_status",
    "title",
    "description",
    "sqfeet_area",
    "sqfeet_builtup",
    "is_exclusive",
    "amenities",
    "is_featured",
    "is_fitted",
    "is_furnished",
    "lifestyle",
    "permit",
    "brochure",
    "images",
    "is_disabled",
    "development",
    "neighbourhood",
    "sold",
)

# Set in the back office, never by the feed; an import only fills them on insert.
ADMIN_OWNED_COLUMNS: frozenset[str] = frozenset(
    {"is_featured", "is_disabled", "is_exclusive", "sold", "lifestyle", "brochure"}
)
FEED_OWNED_COLUMNS: tuple[str, ...] = tuple(
    column for column in WRITABLE_COLUMNS if column != "reference" and column not in ADMIN_OWNED_COLUMNS
)

SELECT_COLUMNS = ", ".join(("id", *WRITABLE_COLUMNS, "created_at", "updated_at"))

_INSERT_COLUMNS = ", ".join(WRITABLE_COLUMNS)
_INSERT_PLACEHOLDERS = ", ".join(f"${i}" for i in range(1, len(WRITABLE_COLUMNS) + 1))
_UPSERT_ASSIGNMENTS = ",\n            ".join(f"{column} = EXCLUDED.{column}" for column in FEED_OWNED_COLUMNS)

UPSERT_SQL = f"""
        INSERT INTO properties ({_INSERT_COLUMNS})
        VALUES ({_INSERT_PLACEHOLDERS})
        ON CONFLICT (reference) DO UPDATE
        SET {_UPSERT_ASSIGNMENTS},
            updated_at = now()
        RETURNING id, reference, (xmax = 0) AS inserted
        """


def _values_in_column_order(values: dict[str, Any]) -> list[Any]:
    return [values.get(column) for column in WRITABLE_COLUMNS]


def build_filter_clause(filters: dict[str, Any]) -> tuple[str, list[Any]]:
    """
    Turn a filter dict into a WHERE clause and its positional args.

    Unknown keys and None values are ignored.
    """
    conditions: list[str] = []
    args: list[Any] = []

    def add(condition: str, value: Any) -> None:
        args.append(value)
        conditions.append(condition.format(n=len(args)))

    for column in ("reference", "listing_type", "property_status", "is_featured", "is_disabled", "bedrooms"):
        value = filters.get(column)
        if value is not None:
            add(f"{column} = ${{n}}", value)

    for column in ("property_type", "community"):
        value = filters.get(column)
        if value:
            add(f"{column} ILIKE '%' || ${{n}} || '%'", value)

    if filters.get("min_price") is not None:
        add("price >= ${n}", filters["min_price"])
    if filters.get("max_price") is not None:
        add("price <= ${n}", filters["max_price"])

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    return where, args


async def list_properties(
    *,
    filters: dict[str, Any] | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """
    Return (rows, total matching rows), newest first.
    """
    where, args = build_filter_clause(filters or {})
    total = await db.fetch_value(f"SELECT count(*) FROM properties {where}", *args)
    rows = await db.fetch_all(
        f"""
        SELECT {SELECT_COLUMNS}
        FROM properties
        {where}
        ORDER BY id DESC
        LIMIT ${len(args) + 1}
        OFFSET ${len(args) + 2}
        """,
        *args,
        limit,
        offset,
    )
    return rows, int(total or 0)


async def get_property(property_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"SELECT {SELECT_COLUMNS} FROM properties WHERE id = $1",
        property_id,
    )


async def get_property_by_reference(reference: str) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"SELECT {SELECT_COLUMNS} FROM properties WHERE reference = $1",
        reference,
    )


async def create_property(values: dict[str, Any]) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO properties ({_INSERT_COLUMNS})
        VALUES ({_INSERT_PLACEHOLDERS})
        RETURNING {SELECT_COLUMNS}
        """,
        *_values_in_column_order(values),
    )
    if row is None:
        raise RuntimeError("Failed to insert property.")
    return row


async def update_property(property_id: int, changes: dict[str, Any]) -> dict[str, Any] | None:
    """
    Write only the given columns. Returns the updated row, or None if missing.
    """
    columns = [column for column in WRITABLE_COLUMNS if column in changes]
    if not columns:
        return await get_property(property_id)

    assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(columns, start=2))
    return await db.fetch_one(
        f"""
        UPDATE properties
        SET {assignments},
            updated_at = now()
        WHERE id = $1
        RETURNING {SELECT_COLUMNS}
        """,
        property_id,
        *[changes[column] for column in columns],
    )


async def delete_property(property_id: int) -> bool:
    status = await db.execute("DELETE FROM properties WHERE id = $1", property_id)
    return db.affected_rows(status) > 0


async def upsert_property(values: dict[str, Any]) -> dict[str, Any]:
    """
    Insert-or-update one property keyed on `reference`.

    An existing row gets every feed-owned column overwritten; the
    ADMIN_OWNED_COLUMNS keep their stored values.

    Returns {"id", "reference", "inserted"}; `inserted` is False when an
    existing row was updated.
    """
    row = await db.fetch_one(UPSERT_SQL, *_values_in_column_order(values))
    if row is None:
        raise RuntimeError("Upsert returned no row.")
    return row


async def list_id_reference_pairs() -> list[dict[str, Any]]:
    return await db.fetch_all("SELECT id, reference FROM properties ORDER BY id")


async def delete_properties_by_ids(ids: list[int]) -> list[int]:
    """
    Delete all given ids in one transaction. Either every row goes or none.
    """
    if not ids:
        return []
    async with db.transaction() as conn:
        rows = await conn.fetch(
            "DELETE FROM properties WHERE id = ANY($1::bigint[]) RETURNING id",
            ids,
        )
    return sorted(int(r["id"]) for r in rows)


async def delete_properties_not_in(references: list[str]) -> list[str]:
    """
    Delete rows whose reference is not in `references`; returns the deleted references.
    """
    if not references:
        raise ValueError("Refusing to prune against an empty reference list.")
    async with db.transaction() as conn:
        rows = await conn.fetch(
            "DELETE FROM properties WHERE NOT (reference = ANY($1::text[])) RETURNING reference",
            references,
        )
    return sorted(str(r["reference"]) for r in rows)
