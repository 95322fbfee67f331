"""
asyncpg pool plus thin raw-SQL helpers.

The pool is opened and closed by the FastAPI lifespan in `api/main.py`.
Queries use asyncpg's positional placeholders ($1, $2, ...) and rows come
back as plain dicts.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from urllib.parse import parse_qsl, urlencode, urlsplit

import asyncpg

from .settings import env_float, env_int, env_str

# libpq-only query options asyncpg rejects in a DSN.
_UNSUPPORTED_DSN_OPTIONS = {"sslmode", "channel_binding"}

_pool: asyncpg.Pool | None = None


def database_url() -> str:
    url = env_str("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")

    parts = urlsplit(url)
    if not parts.query:
        return url
    kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in _UNSUPPORTED_DSN_OPTIONS]
    return parts._replace(query=urlencode(kept)).geturl()


async def _init_connection(conn: asyncpg.Connection) -> None:
    # jsonb columns (images, agent, inline_images) round-trip as Python objects.
    await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


async def init_pool() -> None:
    global _pool
    if _pool is not None:
        return
    _pool = await asyncpg.create_pool(
        dsn=database_url(),
        min_size=env_int("DB_POOL_MIN", 1),
        max_size=env_int("DB_POOL_MAX", 5),
        command_timeout=env_float("DB_COMMAND_TIMEOUT_S", 30.0),
        init=_init_connection,
    )


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return
    pool_, _pool = _pool, None
    await pool_.close()


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("DB pool is not initialized. Call init_pool() on startup.")
    return _pool


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Single row as a dict, or None when the query matched nothing.
    """
    row = await pool().fetchrow(sql, *args)
    return None if row is None else dict(row)


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    return [dict(row) for row in await pool().fetch(sql, *args)]


async def fetch_value(sql: str, *args: Any) -> Any:
    return await pool().fetchval(sql, *args)


async def execute(sql: str, *args: Any) -> str:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL).

    Returns asyncpg's status string, e.g. "DELETE 3".
    """
    return await pool().execute(sql, *args)


def affected_rows(status: str) -> int:
    """
    Parse the row count out of a command status ("UPDATE 2" -> 2).
    """
    try:
        return int((status or "").rsplit(" ", 1)[-1])
    except ValueError:
        return 0


@asynccontextmanager
async def transaction() -> AsyncIterator[asyncpg.Connection]:
    """
    Acquire a connection and run the block inside a single transaction.

    Any exception raised in the block rolls the whole transaction back.
    """
    async with pool().acquire() as conn:  # type: asyncpg.Connection
        async with conn.transaction():
            yield conn
