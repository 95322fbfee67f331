"""
Auth business logic.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import BackgroundTasks, HTTPException, UploadFile, status

from core import mailer, object_storage
from core.settings import frontend_url
from uploads import service as upload_service

from . import emails, repository, schemas, security

FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a password reset link has been sent."
PROFILE_IMAGE_FOLDER = "profile-images"

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=int(user_row["id"]),
        email=str(user_row["email"]),
        first_name=str(user_row.get("first_name") or ""),
        last_name=str(user_row.get("last_name") or ""),
        profile_image=user_row.get("profile_image"),
        is_active=bool(user_row["is_active"]),
        is_verified=bool(user_row.get("is_verified", False)),
        created_at=user_row["created_at"],
    )


def _require_strong_password(password: str) -> None:
    reason = security.password_policy_error(password)
    if reason is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=reason)


def _require_valid_email(email: str) -> None:
    if not security.is_valid_email(email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email format.")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _new_refresh_token() -> tuple[str, str, datetime]:
    """Raw token for the client, its stored hash, and its expiry."""
    raw = security.build_opaque_token()
    expires_at = _utc_now() + timedelta(days=security.refresh_token_expire_days())
    return raw, security.hash_opaque_token(raw), expires_at


def _token_pair(user_row: dict, raw_refresh: str) -> schemas.TokenPairResponse:
    access = security.build_access_token(user_id=int(user_row["id"]), email=str(user_row["email"]))
    return schemas.TokenPairResponse(access_token=access, refresh_token=raw_refresh)


async def _issue_token_pair(
    user_row: dict,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.TokenPairResponse:
    raw, token_hash, expires_at = _new_refresh_token()
    await repository.insert_refresh_token(
        user_id=int(user_row["id"]),
        token_hash=token_hash,
        expires_at=expires_at,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    return _token_pair(user_row, raw)


async def register(
    payload: schemas.RegisterRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.AuthResponse:
    _require_valid_email(payload.email)
    _require_strong_password(payload.password)

    if await repository.get_user_by_email(payload.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists with this email.",
        )

    user_row = await repository.create_user(
        email=payload.email,
        password_hash=security.hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    logger.info("user_registered user_id=%s", user_row["id"])

    tokens = await _issue_token_pair(user_row, user_agent=user_agent, ip_address=ip_address)
    return schemas.AuthResponse(user=_to_user_response(user_row), tokens=tokens)


async def login(
    payload: schemas.LoginRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.AuthResponse:
    user_row = await repository.get_user_by_email(payload.email)
    password_hash = str((user_row or {}).get("password_hash") or "")
    if user_row is None or not security.verify_password(payload.password, password_hash):
        raise _unauthorized("Invalid email or password.")

    if not user_row.get("is_active", False):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive.")

    tokens = await _issue_token_pair(user_row, user_agent=user_agent, ip_address=ip_address)
    logger.info("user_logged_in user_id=%s", user_row["id"])
    return schemas.AuthResponse(user=_to_user_response(user_row), tokens=tokens)


async def refresh_tokens(
    payload: schemas.RefreshRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.TokenPairResponse:
    """
    Exchange a live refresh token for a new pair.

    Each refresh token is single use: the presented one is revoked and linked
    to its replacement in the same transaction.
    """
    presented = (payload.refresh_token or "").strip()
    if not presented:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="refresh_token is required.")

    stored = await repository.get_refresh_token_by_hash(security.hash_opaque_token(presented))
    if stored is None:
        raise _unauthorized("Invalid refresh token.")
    if stored.get("revoked_at") is not None:
        raise _unauthorized("Refresh token is revoked.")

    token_id = int(stored["id"])
    expires_at = stored.get("expires_at")
    if not isinstance(expires_at, datetime) or expires_at <= _utc_now():
        await repository.revoke_refresh_tokens(token_id=token_id)
        raise _unauthorized("Refresh token is expired.")

    user_row = await repository.get_user_by_id(int(stored["user_id"]))
    if user_row is None or not user_row.get("is_active", False):
        await repository.revoke_refresh_tokens(token_id=token_id)
        raise _unauthorized("Invalid refresh token owner.")

    raw, token_hash, new_expiry = _new_refresh_token()
    rotated = await repository.rotate_refresh_token(
        old_token_id=token_id,
        user_id=int(user_row["id"]),
        token_hash=token_hash,
        expires_at=new_expiry,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    if rotated is None:
        raise _unauthorized("Refresh token is revoked.")
    return _token_pair(user_row, raw)


async def logout(
    payload: schemas.LogoutRequest,
    *,
    current_user_id: int | None = None,
) -> schemas.MessageResponse:
    presented = (payload.refresh_token or "").strip()
    if presented:
        await repository.revoke_refresh_tokens(token_hash=security.hash_opaque_token(presented))
    elif current_user_id is not None:
        await repository.revoke_refresh_tokens(user_id=current_user_id)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide refresh_token or authenticated user.",
        )
    return schemas.MessageResponse(message="Logout successful.")


async def get_user_from_access_token(access_token: str) -> dict:
    try:
        claims = security.decode_access_token(access_token)
    except security.AuthSecurityError as exc:
        raise _unauthorized(str(exc)) from exc

    subject = str(claims.get("sub") or "").strip()
    if not subject.isdigit():
        raise _unauthorized("Invalid access token subject.")

    user_row = await repository.get_user_by_id(int(subject))
    if user_row is None:
        raise _unauthorized("User not found.")
    if not user_row.get("is_active", False):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive.")
    return user_row


def profile(user_row: dict) -> schemas.UserResponse:
    return _to_user_response(user_row)


async def update_profile(user_row: dict, payload: schemas.UpdateProfileRequest) -> schemas.UserResponse:
    user_id = int(user_row["id"])
    new_email = payload.email.strip() if payload.email is not None else None

    if new_email is not None:
        _require_valid_email(new_email)
        if repository.normalize_email(new_email) != repository.normalize_email(str(user_row["email"])):
            existing = await repository.get_user_by_email(new_email)
            if existing is not None and int(existing["id"]) != user_id:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already taken.")

    updated = await repository.update_user_profile(
        user_id,
        first_name=payload.first_name.strip() if payload.first_name else None,
        last_name=payload.last_name.strip() if payload.last_name else None,
        email=new_email,
    )
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return _to_user_response(updated)


async def upload_profile_image(user_row: dict, image: UploadFile) -> dict:
    upload = await upload_service.read_image_upload(image)
    try:
        stored = await object_storage.upload_bytes(
            upload.data,
            filename=upload.filename,
            folder=PROFILE_IMAGE_FOLDER,
            content_type=upload.content_type,
        )
    except object_storage.ObjectStorageError as exc:
        logger.warning("profile_image_upload_failed user_id=%s error=%s", user_row["id"], exc)
        raise HTTPException(status_code=502, detail="Failed to upload profile image.") from exc

    updated = await repository.update_user_profile(int(user_row["id"]), profile_image=stored["url"])
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    return {
        "message": "Profile image uploaded successfully.",
        "image_url": stored["url"],
        "user": _to_user_response(updated),
    }


async def change_password(user_row: dict, payload: schemas.ChangePasswordRequest) -> schemas.MessageResponse:
    _require_strong_password(payload.new_password)

    if not security.verify_password(payload.current_password, str(user_row.get("password_hash") or "")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Current password is incorrect.",
        )

    user_id = int(user_row["id"])
    await repository.update_password_hash(user_id, security.hash_password(payload.new_password))
    await repository.revoke_refresh_tokens(user_id=user_id)
    return schemas.MessageResponse(message="Password changed successfully.")


async def delete_account(user_row: dict, payload: schemas.DeleteAccountRequest) -> schemas.MessageResponse:
    if not security.verify_password(payload.password, str(user_row.get("password_hash") or "")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect password.")

    await repository.delete_user(int(user_row["id"]))
    logger.info("user_deleted user_id=%s", user_row["id"])
    return schemas.MessageResponse(message="Account deleted successfully.")


async def send_reset_email(*, user_id: int, email: str, first_name: str, raw_token: str, expires_minutes: int) -> None:
    """
    BackgroundTasks entrypoint. Failures are logged; the caller already answered.
    """
    link = emails.reset_link(frontend_url(), raw_token)
    body = {
        "first_name": first_name,
        "link": link,
        "expires_minutes": expires_minutes,
        "support_email": mailer.from_email(),
    }
    try:
        await mailer.send_email(
            to=email,
            subject=emails.RESET_SUBJECT,
            text=emails.reset_email_text(**body),
            html=emails.reset_email_html(**body),
        )
        logger.info("password_reset_email_sent user_id=%s", user_id)
    except mailer.MailerError:
        logger.exception("password_reset_email_failed user_id=%s", user_id)


async def forgot_password(
    payload: schemas.ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
) -> schemas.MessageResponse:
    """
    Start a password reset.

    The response is identical whether or not the account exists, and the
    email goes out after the response, so neither body nor timing reveals
    which emails are registered.
    """
    email = (payload.email or "").strip()
    if not security.is_valid_email(email):
        return schemas.MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    user_row = await repository.get_user_by_email(email)
    if user_row is None:
        return schemas.MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    raw_token = security.build_opaque_token()
    expires_minutes = security.password_reset_expire_minutes()
    await repository.insert_password_reset_token(
        user_id=int(user_row["id"]),
        token_hash=security.hash_opaque_token(raw_token),
        expires_at=_utc_now() + timedelta(minutes=expires_minutes),
    )

    background_tasks.add_task(
        send_reset_email,
        user_id=int(user_row["id"]),
        email=str(user_row["email"]),
        first_name=str(user_row.get("first_name") or ""),
        raw_token=raw_token,
        expires_minutes=expires_minutes,
    )
    return schemas.MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


async def _load_valid_reset_token(raw_token: str) -> dict:
    try:
        token_hash = security.hash_opaque_token(raw_token)
    except security.AuthSecurityError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Reset token is required.") from exc

    row = await repository.get_password_reset_token(token_hash)
    if row is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token.")

    expires_at = row.get("expires_at")
    if not isinstance(expires_at, datetime) or expires_at <= _utc_now():
        await repository.delete_password_reset_token(token_hash)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Reset token has expired.")
    return row


async def verify_reset_token(payload: schemas.VerifyResetTokenRequest) -> schemas.MessageResponse:
    await _load_valid_reset_token(payload.token)
    return schemas.MessageResponse(message="Reset token is valid.")


async def reset_password(payload: schemas.ResetPasswordRequest) -> schemas.MessageResponse:
    _require_strong_password(payload.new_password)
    row = await _load_valid_reset_token(payload.token)

    user_id = int(row["user_id"])
    await repository.update_password_hash(user_id, security.hash_password(payload.new_password))
    await repository.delete_password_reset_tokens_for_user(user_id)
    await repository.revoke_refresh_tokens(user_id=user_id)
    logger.info("password_reset_completed user_id=%s", user_id)
    return schemas.MessageResponse(message="Password reset successfully.")
