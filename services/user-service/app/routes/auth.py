"""
Authentication Routes
Registration, login, token refresh, profile and account recovery
"""

from fastapi import APIRouter, HTTPException, status
import logging

from shared.schemas.auth import (
    AuthResponse,
    AuthTokens,
    EmailVerificationRequest,
    LoginRequest,
    PasswordChangeRequest,
    PasswordResetConfirmRequest,
    PasswordResetRequest,
    RefreshTokenRequest,
    RegisterRequest,
)
from shared.schemas.user import ProfileUpdateSchema, UserPublic
from shared.services import UserServiceError

from app.services.auth_service import InvalidTokenError
from app.utils.dependencies import AuthServiceDep, CurrentUser
from app.utils.errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, auth_service: AuthServiceDep):
    """
    Register a new user

    The account starts as PENDING_VERIFICATION; the verification link is
    emailed through the configured notifier.
    """
    try:
        result = await auth_service.register(data)
    except UserServiceError as e:
        raise to_http_exception(e)

    return AuthResponse(user=result['user'], tokens=result['tokens'])


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, auth_service: AuthServiceDep):
    try:
        return await auth_service.login(data.email, data.password)
    except UserServiceError as e:
        raise to_http_exception(e)


@router.post("/refresh", response_model=AuthTokens)
async def refresh(data: RefreshTokenRequest, auth_service: AuthServiceDep):
    """Rotate the access/refresh token pair"""
    try:
        return await auth_service.refresh(data.refresh_token)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    except UserServiceError as e:
        raise to_http_exception(e)


@router.post("/logout")
async def logout(data: RefreshTokenRequest, auth_service: AuthServiceDep, current_user: CurrentUser):
    await auth_service.logout(data.refresh_token)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/profile", response_model=UserPublic)
async def get_profile(auth_service: AuthServiceDep, current_user: CurrentUser):
    try:
        return await auth_service.get_profile(current_user.user_id)
    except UserServiceError as e:
        raise to_http_exception(e)


@router.put("/profile", response_model=UserPublic)
async def update_profile(data: ProfileUpdateSchema, auth_service: AuthServiceDep, current_user: CurrentUser):
    try:
        return await auth_service.update_profile(current_user, data)
    except UserServiceError as e:
        raise to_http_exception(e)


@router.post("/change-password")
async def change_password(data: PasswordChangeRequest, auth_service: AuthServiceDep, current_user: CurrentUser):
    try:
        await auth_service.change_password(current_user.user_id, data.current_password, data.new_password)
    except UserServiceError as e:
        raise to_http_exception(e)

    return {"success": True, "message": "Password changed successfully"}


@router.post("/verify-email", response_model=UserPublic)
async def verify_email(data: EmailVerificationRequest, auth_service: AuthServiceDep):
    try:
        return await auth_service.verify_email(data.token)
    except UserServiceError as e:
        raise to_http_exception(e)


@router.post("/request-password-reset")
async def request_password_reset(data: PasswordResetRequest, auth_service: AuthServiceDep):
    """Always answers the same way so registered emails cannot be enumerated"""
    try:
        await auth_service.request_password_reset(data.email)
    except UserServiceError as e:
        raise to_http_exception(e)

    return {"success": True, "message": "If the email is registered, a reset link has been sent"}


@router.post("/reset-password")
async def reset_password(data: PasswordResetConfirmRequest, auth_service: AuthServiceDep):
    try:
        await auth_service.reset_password(data.token, data.new_password)
    except UserServiceError as e:
        raise to_http_exception(e)

    return {"success": True, "message": "Password has been reset"}
