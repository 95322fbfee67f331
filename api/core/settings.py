"""
Environment-variable settings.

Values are read at call time so tests can monkeypatch the environment.
Bad values fall back to the default instead of failing at import.
"""

from __future__ import annotations

import os

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip() or default


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


def env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def frontend_url() -> str:
    return env_str("FRONTEND_URL", "http://localhost:5173").rstrip("/")


def cors_allow_origins() -> list[str]:
    return env_list("CORS_ALLOW_ORIGINS", ["*"])


def max_upload_bytes() -> int:
    value = env_int("MAX_UPLOAD_BYTES", 5 * 1024 * 1024)
    return value if value > 0 else 5 * 1024 * 1024
