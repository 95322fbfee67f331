"""
Import run bookkeeping (`import_runs` table).

The newest finished run is the scheduler's clock: the next automatic import
is due `IMPORT_INTERVAL_S` seconds after it.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from core import db

# pg advisory lock key shared by every API process ("PFIMPORT" as bytes).
IMPORT_LOCK_KEY = 0x5046494D504F5254

RUN_COLUMNS = "id, source, trigger, started_at, finished_at, total, processed, errors, deleted, succeeded, message"


async def start_run(*, source: str, trigger: str) -> int:
    row = await db.fetch_one(
        """
        INSERT INTO import_runs (source, trigger)
        VALUES ($1, $2)
        RETURNING id
        """,
        source,
        trigger,
    )
    if row is None:
        raise RuntimeError("Failed to record import run.")
    return int(row["id"])


async def finish_run(
    run_id: int,
    *,
    source: str,
    total: int,
    processed: int,
    errors: int,
    deleted: int,
    succeeded: bool,
    message: str,
) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        UPDATE import_runs
        SET source = $2,
            total = $3,
            processed = $4,
            errors = $5,
            deleted = $6,
            succeeded = $7,
            message = $8,
            finished_at = now()
        WHERE id = $1
        RETURNING {RUN_COLUMNS}
        """,
        run_id,
        source,
        total,
        processed,
        errors,
        deleted,
        succeeded,
        message,
    )


async def last_finished_run() -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {RUN_COLUMNS}
        FROM import_runs
        WHERE finished_at IS NOT NULL
        ORDER BY finished_at DESC
        LIMIT 1
        """
    )


async def list_runs(*, limit: int = 20) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {RUN_COLUMNS}
        FROM import_runs
        ORDER BY started_at DESC
        LIMIT $1
        """,
        limit,
    )


@asynccontextmanager
async def advisory_lock(key: int = IMPORT_LOCK_KEY) -> AsyncIterator[bool]:
    """
    Try to take a session-level Postgres advisory lock without waiting.

    Yields whether it was acquired. The lock is held on one pooled connection
    for the whole block, so it spans processes (several uvicorn workers).
    """
    async with db.pool().acquire() as conn:
        acquired = bool(await conn.fetchval("SELECT pg_try_advisory_lock($1)", key))
        try:
            yield acquired
        finally:
            if acquired:
                await conn.fetchval("SELECT pg_advisory_unlock($1)", key)
