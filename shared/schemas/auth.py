"""
Authentication schemas for the App Starter Kit

Request and response payloads for registration, login and token handling.
"""

from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from .user import UserPublic, UserRole, check_password_strength


class RegisterRequest(BaseModel):
    """Schema for user registration"""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        """Validate password strength"""
        return check_password_strength(v)


class LoginRequest(BaseModel):
    """Schema for user login"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class AuthTokens(BaseModel):
    """Access/refresh token pair"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthResponse(BaseModel):
    user: UserPublic
    tokens: AuthTokens


class TokenPayload(BaseModel):
    """Decoded access token claims"""
    user_id: str
    email: str
    role: UserRole


class EmailVerificationRequest(BaseModel):
    token: str = Field(..., min_length=1)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirmRequest(BaseModel):
    """Schema for completing a password reset"""
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v):
        """Validate new password strength"""
        return check_password_strength(v)


class PasswordChangeRequest(BaseModel):
    """Schema for password change"""
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v):
        """Validate new password strength"""
        return check_password_strength(v)
