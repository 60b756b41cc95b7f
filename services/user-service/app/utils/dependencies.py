"""
FastAPI Dependencies
Service accessors and bearer token authentication
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Annotated
import logging

from shared.applog import AppLogger
from shared.schemas.auth import TokenPayload
from shared.schemas.user import UserRole, UserStatus
from shared.services import UserService
from shared.utils.security import SecurityUtils

from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)

# Security scheme for JWT tokens
security = HTTPBearer()


def get_app_logger(request: Request) -> AppLogger:
    return request.app.state.app_logger


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_security(request: Request) -> SecurityUtils:
    return request.app.state.security


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    security_utils: Annotated[SecurityUtils, Depends(get_security)],
    user_service: Annotated[UserService, Depends(get_user_service)]
) -> TokenPayload:
    """
    Resolve the authenticated user from the access token

    The stored record is re-read so role and status changes apply
    without waiting for the token to expire.

    Raises:
        HTTPException: 401 for bad tokens or unknown users, 403 for disabled accounts
    """
    payload = security_utils.decode_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await user_service.get_user_by_id(payload.get('sub', ''))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User no longer exists",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.status in (UserStatus.INACTIVE, UserStatus.SUSPENDED):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )

    return TokenPayload(user_id=user.id, email=user.email, role=user.role)


def require_roles(*roles: UserRole):
    """Dependency factory admitting only the given roles"""

    async def check_role(current_user: Annotated[TokenPayload, Depends(get_current_user)]) -> TokenPayload:
        if current_user.role not in roles:
            logger.warning(f"User {current_user.user_id} with role {current_user.role.value} denied")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user

    return check_role


# Type aliases for cleaner dependency injection
AppLoggerDep = Annotated[AppLogger, Depends(get_app_logger)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
CurrentUser = Annotated[TokenPayload, Depends(get_current_user)]
StaffUser = Annotated[TokenPayload, Depends(require_roles(UserRole.MANAGER, UserRole.SUPER_ADMIN))]
SuperAdminUser = Annotated[TokenPayload, Depends(require_roles(UserRole.SUPER_ADMIN))]
