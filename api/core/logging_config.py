"""
Process-wide logging setup.
"""

from __future__ import annotations

import logging

from .settings import env_str

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_configured = False


def configure_logging() -> None:
    """
    Configure the root logger once. Level comes from LOG_LEVEL (default INFO).
    """
    global _configured
    if _configured:
        return

    level_name = env_str("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO; keep feed polling quiet.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    _configured = True
