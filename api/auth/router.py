"""
Auth API endpoints (mounted under /api/auth).
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, File, Request, UploadFile, status

from . import dependencies, schemas, service

router = APIRouter(prefix="/auth")


def _client_meta(request: Request) -> dict[str, str | None]:
    return {
        "user_agent": request.headers.get("user-agent"),
        "ip_address": request.client.host if request.client else None,
    }


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=schemas.AuthResponse)
async def register(payload: schemas.RegisterRequest, request: Request) -> schemas.AuthResponse:
    return await service.register(payload, **_client_meta(request))


@router.post("/login", response_model=schemas.AuthResponse)
async def login(payload: schemas.LoginRequest, request: Request) -> schemas.AuthResponse:
    return await service.login(payload, **_client_meta(request))


@router.post("/refresh", response_model=schemas.TokenPairResponse)
async def refresh(payload: schemas.RefreshRequest, request: Request) -> schemas.TokenPairResponse:
    return await service.refresh_tokens(payload, **_client_meta(request))


@router.post("/logout", response_model=schemas.MessageResponse)
async def logout(
    payload: schemas.LogoutRequest,
    current_user: dict | None = Depends(dependencies.get_optional_user),
) -> schemas.MessageResponse:
    current_user_id = int(current_user["id"]) if current_user is not None else None
    return await service.logout(payload, current_user_id=current_user_id)


@router.get("/profile")
async def get_profile(current_user: dict = Depends(dependencies.get_current_user)) -> dict:
    return {"user": service.profile(current_user)}


@router.put("/profile")
async def update_profile(
    payload: schemas.UpdateProfileRequest,
    current_user: dict = Depends(dependencies.get_current_user),
) -> dict:
    user = await service.update_profile(current_user, payload)
    return {"message": "Profile updated successfully.", "user": user}


@router.post("/upload-profile-image")
async def upload_profile_image(
    image: UploadFile = File(...),
    current_user: dict = Depends(dependencies.get_current_user),
) -> dict:
    return await service.upload_profile_image(current_user, image)


@router.post("/change-password", response_model=schemas.MessageResponse)
async def change_password(
    payload: schemas.ChangePasswordRequest,
    current_user: dict = Depends(dependencies.get_current_user),
) -> schemas.MessageResponse:
    return await service.change_password(current_user, payload)


@router.post("/delete-account", response_model=schemas.MessageResponse)
async def delete_account(
    payload: schemas.DeleteAccountRequest,
    current_user: dict = Depends(dependencies.get_current_user),
) -> schemas.MessageResponse:
    return await service.delete_account(current_user, payload)


@router.post("/forgot-password", response_model=schemas.MessageResponse)
async def forgot_password(
    payload: schemas.ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
) -> schemas.MessageResponse:
    return await service.forgot_password(payload, background_tasks)


@router.post("/verify-reset-token", response_model=schemas.MessageResponse)
async def verify_reset_token(payload: schemas.VerifyResetTokenRequest) -> schemas.MessageResponse:
    return await service.verify_reset_token(payload)


@router.post("/reset-password", response_model=schemas.MessageResponse)
async def reset_password(payload: schemas.ResetPasswordRequest) -> schemas.MessageResponse:
    return await service.reset_password(payload)
