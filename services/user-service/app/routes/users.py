"""
User Management Routes
Role-checked user CRUD; responses use the {"success", "data"} envelope
"""

from fastapi import APIRouter, HTTPException, Request, status, Query
import logging

from shared.schemas.user import UserCreateSchema, UserRole, UserUpdateSchema
from shared.services import UserServiceError
from shared.utils.logger import get_audit_logger

from app.utils.dependencies import CurrentUser, StaffUser, UserServiceDep
from app.utils.errors import to_http_exception

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

router = APIRouter()


def _client_ip(request: Request):
    return request.client.host if request.client else None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreateSchema,
    request: Request,
    user_service: UserServiceDep,
    current_user: StaffUser
):
    """
    Create a user on behalf of an administrator

    Only super admins may assign a role other than USER.
    """
    if data.role not in (None, UserRole.USER) and current_user.role != UserRole.SUPER_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only super admins can assign roles"
        )

    try:
        user = await user_service.create_user(data)
    except UserServiceError as e:
        raise to_http_exception(e)

    audit_logger.log_user_action(
        current_user.user_id, "create", "user", user.id,
        details={'role': user.role.value}, ip_address=_client_ip(request)
    )
    return {"success": True, "data": user}


@router.get("")
async def list_users_by_role(
    user_service: UserServiceDep,
    current_user: CurrentUser,
    role: UserRole = Query(..., description="Role to filter by")
):
    try:
        users = await user_service.get_users_by_role(role, requesting_user_role=current_user.role)
    except UserServiceError as e:
        raise to_http_exception(e)

    return {"success": True, "data": users, "total": len(users)}


@router.get("/by-email/{email}")
async def get_user_by_email(email: str, user_service: UserServiceDep, current_user: StaffUser):
    user = await user_service.get_user_by_email(email)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return {"success": True, "data": user}


@router.get("/{user_id}")
async def get_user(user_id: str, user_service: UserServiceDep, current_user: CurrentUser):
    """Users may read their own record; staff may read any"""
    if user_id != current_user.user_id and current_user.role not in (UserRole.MANAGER, UserRole.SUPER_ADMIN):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")

    user = await user_service.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return {"success": True, "data": user}


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    data: UserUpdateSchema,
    request: Request,
    user_service: UserServiceDep,
    current_user: CurrentUser
):
    changes = data.model_dump(exclude_unset=True)

    try:
        user = await user_service.update_user(
            user_id,
            changes,
            requesting_user_id=current_user.user_id,
            requesting_user_role=current_user.role
        )
    except UserServiceError as e:
        raise to_http_exception(e)

    audit_logger.log_user_action(
        current_user.user_id, "update", "user", user_id,
        details={'fields': sorted(changes)}, ip_address=_client_ip(request)
    )
    return {"success": True, "data": user}


@router.delete("/{user_id}")
async def delete_user(user_id: str, request: Request, user_service: UserServiceDep, current_user: CurrentUser):
    try:
        await user_service.delete_user(
            user_id,
            requesting_user_id=current_user.user_id,
            requesting_user_role=current_user.role
        )
    except UserServiceError as e:
        raise to_http_exception(e)

    audit_logger.log_user_action(
        current_user.user_id, "delete", "user", user_id, ip_address=_client_ip(request)
    )
    logger.info(f"User {user_id} deleted by {current_user.user_id}")
    return {"success": True, "data": None}
