"""
User data schemas for the App Starter Kit

Pydantic models for user data validation and serialization.
"""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum


# bcrypt only uses the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def check_password_strength(v: str) -> str:
    """Require upper case, lower case and digit characters within the bcrypt byte limit"""
    if len(v.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise ValueError(f'Password must be at most {MAX_PASSWORD_BYTES} bytes')

    has_upper = any(c.isupper() for c in v)
    has_lower = any(c.islower() for c in v)
    has_digit = any(c.isdigit() for c in v)

    if not all([has_upper, has_lower, has_digit]):
        raise ValueError('Password must contain uppercase, lowercase and digit characters')
    return v


class UserRole(str, Enum):
    """User role enumeration"""
    SUPER_ADMIN = "SUPER_ADMIN"
    MANAGER = "MANAGER"
    USER = "USER"


class UserStatus(str, Enum):
    """User status enumeration"""
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class UserRecord(BaseModel):
    """Full user record as stored by a data source"""
    id: str
    email: str
    password_hash: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_photo: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    department: Optional[str] = None
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.PENDING_VERIFICATION
    email_verified: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserCreateSchema(BaseModel):
    """Schema for creating a new user"""
    email: str
    password: str = Field(..., min_length=8, max_length=128)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        """Validate password strength"""
        return check_password_strength(v)


class ProfileUpdateSchema(BaseModel):
    """Schema for a user updating their own profile"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone: Optional[str] = Field(None, pattern=r'^\+?[0-9 \-]{7,20}$')
    date_of_birth: Optional[str] = Field(None, pattern=r'^\d{4}-\d{2}-\d{2}$')
    address: Optional[str] = Field(None, max_length=255)
    emergency_contact: Optional[str] = Field(None, max_length=255)
    department: Optional[str] = Field(None, max_length=100)
    profile_photo: Optional[str] = None


class UserUpdateSchema(ProfileUpdateSchema):
    """Schema for updating user information, including administrative fields"""
    email: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


class UserPublic(BaseModel):
    """User representation without sensitive fields"""
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_photo: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    role: UserRole
    status: UserStatus
    email_verified: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserPublic":
        """Strip sensitive fields from a full record"""
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            profile_photo=user.profile_photo,
            phone=user.phone,
            department=user.department,
            role=user.role,
            status=user.status,
            email_verified=user.email_verified,
            created_at=user.created_at,
        )


class UserListSchema(BaseModel):
    """Schema for user list responses"""
    users: List[UserPublic]
    total: int
