"""
FastAPI dependencies that resolve the calling user from a bearer token.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from . import service

# auto_error is off so missing credentials map to our own 401 detail (and
# so the optional variant can let anonymous callers through).
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_access_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if credentials is None:
        raise _unauthorized("Missing Authorization header.")
    token = credentials.credentials.strip()
    if not token:
        raise _unauthorized("Authorization must be: Bearer <token>.")
    return token


async def get_current_user(access_token: str = Depends(get_access_token)) -> dict:
    return await service.get_user_from_access_token(access_token)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict | None:
    """Anonymous callers resolve to None; a bad token is still a 401."""
    if credentials is None:
        return None
    return await service.get_user_from_access_token(credentials.credentials)
