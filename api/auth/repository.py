"""
Auth persistence helpers.
"""

from __future__ import annotations

from datetime import datetime, timezone

from core import db

USER_COLUMNS = """
    id, email, password_hash, first_name, last_name, profile_image,
    is_active, is_verified, created_at, updated_at
"""


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def create_user(
    *,
    email: str,
    password_hash: str,
    first_name: str,
    last_name: str,
) -> dict:
    row = await db.fetch_one(
        f"""
        INSERT INTO users (email, password_hash, first_name, last_name)
        VALUES ($1, $2, $3, $4)
        RETURNING {USER_COLUMNS}
        """,
        normalize_email(email),
        password_hash,
        first_name.strip(),
        last_name.strip(),
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    return row


async def get_user_by_email(email: str) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {USER_COLUMNS}
        FROM users
        WHERE lower(email) = lower($1)
        """,
        normalize_email(email),
    )


async def get_user_by_id(user_id: int) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {USER_COLUMNS}
        FROM users
        WHERE id = $1
        """,
        user_id,
    )


async def update_user_profile(
    user_id: int,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    email: str | None = None,
    profile_image: str | None = None,
) -> dict | None:
    return await db.fetch_one(
        f"""
        UPDATE users
        SET first_name = COALESCE($2, first_name),
            last_name = COALESCE($3, last_name),
            email = COALESCE($4, email),
            profile_image = COALESCE($5, profile_image),
            updated_at = now()
        WHERE id = $1
        RETURNING {USER_COLUMNS}
        """,
        user_id,
        first_name,
        last_name,
        normalize_email(email) if email is not None else None,
        profile_image,
    )


async def update_password_hash(user_id: int, password_hash: str) -> None:
    await db.execute(
        """
        UPDATE users
        SET password_hash = $2,
            updated_at = now()
        WHERE id = $1
        """,
        user_id,
        password_hash,
    )


async def delete_user(user_id: int) -> bool:
    status = await db.execute("DELETE FROM users WHERE id = $1", user_id)
    return db.affected_rows(status) > 0


REFRESH_COLUMNS = """
    id, user_id, token_hash, expires_at, revoked_at, replaced_by_token_id,
    created_at, last_used_at, user_agent, ip_address
"""

_INSERT_REFRESH_SQL = f"""
    INSERT INTO refresh_tokens (user_id, token_hash, expires_at, user_agent, ip_address)
    VALUES ($1, $2, $3, $4, $5)
    RETURNING {REFRESH_COLUMNS}
"""


async def insert_refresh_token(
    *,
    user_id: int,
    token_hash: str,
    expires_at: datetime,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> dict:
    row = await db.fetch_one(_INSERT_REFRESH_SQL, user_id, token_hash, _as_utc(expires_at), user_agent, ip_address)
    if row is None:
        raise RuntimeError("Failed to insert refresh token.")
    return row


async def get_refresh_token_by_hash(token_hash: str) -> dict | None:
    return await db.fetch_one(
        f"SELECT {REFRESH_COLUMNS} FROM refresh_tokens WHERE token_hash = $1",
        token_hash,
    )


async def revoke_refresh_tokens(
    *,
    token_id: int | None = None,
    token_hash: str | None = None,
    user_id: int | None = None,
) -> int:
    """
    Revoke live refresh tokens matching exactly one selector. Returns the count.
    """
    selectors = {"id": token_id, "token_hash": token_hash, "user_id": user_id}
    chosen = [(column, value) for column, value in selectors.items() if value is not None]
    if len(chosen) != 1:
        raise ValueError("Pass exactly one of token_id, token_hash or user_id.")

    column, value = chosen[0]
    status = await db.execute(
        f"UPDATE refresh_tokens SET revoked_at = now() WHERE {column} = $1 AND revoked_at IS NULL",
        value,
    )
    return db.affected_rows(status)


async def rotate_refresh_token(
    *,
    old_token_id: int,
    user_id: int,
    token_hash: str,
    expires_at: datetime,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> dict | None:
    """
    Revoke the old token and issue its replacement in one transaction.

    Returns None when the old token was already revoked (e.g. a concurrent
    refresh won the race); nothing is inserted in that case.
    """
    async with db.transaction() as conn:
        claimed = await conn.fetchrow(
            """
            UPDATE refresh_tokens
            SET revoked_at = now(),
                last_used_at = now()
            WHERE id = $1
              AND revoked_at IS NULL
            RETURNING id
            """,
            old_token_id,
        )
        if claimed is None:
            return None

        new_row = await conn.fetchrow(
            _INSERT_REFRESH_SQL,
            user_id,
            token_hash,
            _as_utc(expires_at),
            user_agent,
            ip_address,
        )
        await conn.execute(
            "UPDATE refresh_tokens SET replaced_by_token_id = $2 WHERE id = $1",
            old_token_id,
            new_row["id"],
        )
    return dict(new_row)


async def insert_password_reset_token(*, user_id: int, token_hash: str, expires_at: datetime) -> None:
    await db.execute(
        """
        INSERT INTO password_reset_tokens (user_id, token_hash, expires_at)
        VALUES ($1, $2, $3)
        """,
        user_id,
        token_hash,
        _as_utc(expires_at),
    )


async def get_password_reset_token(token_hash: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, user_id, token_hash, expires_at, created_at
        FROM password_reset_tokens
        WHERE token_hash = $1
        """,
        token_hash,
    )


async def delete_password_reset_token(token_hash: str) -> None:
    await db.execute("DELETE FROM password_reset_tokens WHERE token_hash = $1", token_hash)


async def delete_password_reset_tokens_for_user(user_id: int) -> None:
    await db.execute("DELETE FROM password_reset_tokens WHERE user_id = $1", user_id)
