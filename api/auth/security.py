"""
Auth security helpers: password hashing, policy checks, token building.
"""

from __future__ import annotations

import hashlib
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from core.settings import env_int, env_str

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
BCRYPT_ROUNDS = 12
ACCESS_TOKEN_TYPE = "access"

PASSWORD_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^.{8,}$", re.DOTALL), "Password must be at least 8 characters long."),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter."),
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter."),
    (re.compile(r"\d"), "Password must contain at least one number."),
]


class AuthSecurityError(RuntimeError):
    pass


def jwt_secret() -> str:
    # Always set JWT_SECRET outside local development.
    return env_str("JWT_SECRET", "dev-change-this-secret")


def jwt_algorithm() -> str:
    return env_str("JWT_ALG", "HS256")


def access_token_expire_minutes() -> int:
    return env_int("ACCESS_TOKEN_EXPIRE_MIN", 15)


def refresh_token_expire_days() -> int:
    return env_int("REFRESH_TOKEN_EXPIRE_DAYS", 7)


def password_reset_expire_minutes() -> int:
    return env_int("PASSWORD_RESET_EXPIRE_MIN", 60)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match((email or "").strip()))


def password_policy_error(password: str) -> str | None:
    """
    Return the first policy rule the password breaks, or None when it passes.
    """
    for pattern, reason in PASSWORD_RULES:
        if not pattern.search(password or ""):
            return reason
    return None


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise AuthSecurityError("Password is empty.")
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def build_access_token(*, user_id: int, email: str) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "email": email,
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=access_token_expire_minutes()),
    }
    return jwt.encode(claims, jwt_secret(), algorithm=jwt_algorithm())


def decode_access_token(token: str) -> dict[str, Any]:
    if not (token or "").strip():
        raise AuthSecurityError("Access token is empty.")

    try:
        claims = jwt.decode(
            token.strip(),
            jwt_secret(),
            algorithms=[jwt_algorithm()],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthSecurityError("Access token has expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthSecurityError("Invalid access token.") from exc

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise AuthSecurityError("Token is not an access token.")
    return claims


def build_opaque_token() -> str:
    """URL-safe random string for refresh and password-reset tokens."""
    return secrets.token_urlsafe(48)


def hash_opaque_token(raw_token: str) -> str:
    token = (raw_token or "").strip()
    if not token:
        raise AuthSecurityError("Token is empty.")
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
