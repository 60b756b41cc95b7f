"""
Shared data schemas for the App Starter Kit

This package contains the user and authentication schemas shared by the
backend API and the service layer.
"""

from .user import (
    UserRole, UserStatus, UserRecord, UserCreateSchema, UserUpdateSchema,
    ProfileUpdateSchema, UserPublic, UserListSchema
)
from .auth import (
    RegisterRequest, LoginRequest, RefreshTokenRequest, AuthTokens, AuthResponse,
    TokenPayload, EmailVerificationRequest, PasswordResetRequest,
    PasswordResetConfirmRequest, PasswordChangeRequest
)

__all__ = [
    "UserRole",
    "UserStatus",
    "UserRecord",
    "UserCreateSchema",
    "UserUpdateSchema",
    "ProfileUpdateSchema",
    "UserPublic",
    "UserListSchema",
    "RegisterRequest",
    "LoginRequest",
    "RefreshTokenRequest",
    "AuthTokens",
    "AuthResponse",
    "TokenPayload",
    "EmailVerificationRequest",
    "PasswordResetRequest",
    "PasswordResetConfirmRequest",
    "PasswordChangeRequest",
]

__version__ = "1.0.0"
