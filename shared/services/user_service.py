"""
User Service
Role-aware user management on top of a pluggable data source
"""

from typing import Any, Dict, List, Optional

from shared.applog import AppLogger, LoggerConfig
from shared.schemas.user import UserCreateSchema, UserPublic, UserRecord, UserRole, UserStatus
from shared.utils.security import validate_email

from .adapters.base import DataSource
from .exceptions import (
    EmailAlreadyExistsError,
    InvalidEmailError,
    InvalidStatusTransitionError,
    UnauthorizedActionError,
    UserNotFoundError,
)

# Allowed status changes; setting the current status again is always accepted
STATUS_TRANSITIONS = {
    UserStatus.PENDING_VERIFICATION: {UserStatus.ACTIVE},
    UserStatus.ACTIVE: {UserStatus.INACTIVE, UserStatus.SUSPENDED},
    UserStatus.INACTIVE: {UserStatus.ACTIVE},
    UserStatus.SUSPENDED: {UserStatus.ACTIVE},
}

STAFF_ROLES = (UserRole.SUPER_ADMIN, UserRole.MANAGER)


class UserService:
    """User management with authorization checks"""

    def __init__(
        self,
        data_source: DataSource,
        logger: Optional[AppLogger] = None,
        default_role: UserRole = UserRole.USER,
        default_status: UserStatus = UserStatus.PENDING_VERIFICATION
    ):
        self.data_source = data_source
        self.logger = logger or AppLogger(LoggerConfig(file_logging_enabled=False))
        self.default_role = default_role
        self.default_status = default_status

    async def create_user(self, data: UserCreateSchema) -> UserPublic:
        """
        Create a new user

        Args:
            data: Email, password and optional profile, role and status

        Returns:
            UserPublic: Created user without sensitive fields

        Raises:
            InvalidEmailError: Email is malformed
            EmailAlreadyExistsError: Email is already registered
        """
        if not validate_email(data.email):
            raise InvalidEmailError()

        existing_user = await self.data_source.get_user_by_email(data.email)
        if existing_user:
            self.logger.warn("Rejected duplicate registration", data={'email': data.email})
            raise EmailAlreadyExistsError()

        user_data = data.model_dump(exclude_none=True)
        user_data['role'] = data.role or self.default_role
        user_data['status'] = data.status or self.default_status

        user = await self.data_source.create_user(user_data)
        self.logger.info("User created", data={'user_id': user.id, 'role': user.role.value})
        return UserPublic.from_record(user)

    async def get_user_by_id(self, user_id: str) -> Optional[UserPublic]:
        user = await self.data_source.get_user_by_id(user_id)
        return UserPublic.from_record(user) if user else None

    async def get_user_record(self, user_id: str) -> Optional[UserRecord]:
        """Full record including the password hash, for authentication only"""
        return await self.data_source.get_user_by_id(user_id)

    async def get_user_by_email(self, email: str) -> Optional[UserPublic]:
        user = await self.data_source.get_user_by_email(email)
        return UserPublic.from_record(user) if user else None

    async def get_user_record_by_email(self, email: str) -> Optional[UserRecord]:
        return await self.data_source.get_user_by_email(email)

    async def update_user(
        self,
        user_id: str,
        data: Dict[str, Any],
        requesting_user_id: Optional[str] = None,
        requesting_user_role: Optional[UserRole] = None
    ) -> UserPublic:
        """
        Update user fields

        Args:
            user_id: Target user ID
            data: Fields to change; None values are ignored
            requesting_user_id: ID of the acting user
            requesting_user_role: Role of the acting user

        Returns:
            UserPublic: Updated user
        """
        existing_user = await self.data_source.get_user_by_id(user_id)
        if not existing_user:
            raise UserNotFoundError()

        if not self.can_modify_user(existing_user, requesting_user_id, requesting_user_role):
            self._log_denied("modify", user_id, requesting_user_id)
            raise UnauthorizedActionError("Unauthorized to modify this user")

        changes = {key: value for key, value in data.items() if value is not None}

        if 'role' in changes:
            changes['role'] = UserRole(changes['role'])
        if 'status' in changes:
            changes['status'] = UserStatus(changes['status'])

        role = changes.get('role')
        if role is not None and role != existing_user.role:
            if requesting_user_role != UserRole.SUPER_ADMIN:
                self._log_denied("change role of", user_id, requesting_user_id)
                raise UnauthorizedActionError("Only super admins can change roles")

        status = changes.get('status')
        if status is not None and status != existing_user.status:
            if requesting_user_role not in STAFF_ROLES:
                self._log_denied("change status of", user_id, requesting_user_id)
                raise UnauthorizedActionError("Unauthorized to change user status")
            self.check_status_transition(existing_user.status, status)

        email = changes.get('email')
        if email is not None:
            if not validate_email(email):
                raise InvalidEmailError()
            if email != existing_user.email:
                if await self.data_source.get_user_by_email(email):
                    raise EmailAlreadyExistsError("Email already in use")

        updated_user = await self.data_source.update_user(user_id, changes)
        self.logger.info(
            "User updated",
            data={'user_id': user_id, 'by': requesting_user_id, 'fields': sorted(changes)}
        )
        return UserPublic.from_record(updated_user)

    async def delete_user(
        self,
        user_id: str,
        requesting_user_id: Optional[str] = None,
        requesting_user_role: Optional[UserRole] = None
    ) -> None:
        user = await self.data_source.get_user_by_id(user_id)
        if not user:
            raise UserNotFoundError()

        if not self.can_delete_user(user, requesting_user_id, requesting_user_role):
            self._log_denied("delete", user_id, requesting_user_id)
            raise UnauthorizedActionError("Unauthorized to delete this user")

        await self.data_source.delete_user(user_id)
        self.logger.info("User deleted", data={'user_id': user_id, 'by': requesting_user_id})

    async def get_users_by_role(
        self,
        role: UserRole,
        requesting_user_role: Optional[UserRole] = None
    ) -> List[UserPublic]:
        if not self.can_view_users_by_role(requesting_user_role):
            raise UnauthorizedActionError("Unauthorized to view users by role")

        users = await self.data_source.get_users_by_role(role)
        return [UserPublic.from_record(user) for user in users]

    async def mark_email_verified(self, user_id: str) -> UserPublic:
        """Confirm the user's email and activate a pending account"""
        user = await self.data_source.get_user_by_id(user_id)
        if not user:
            raise UserNotFoundError()

        changes: Dict[str, Any] = {'email_verified': True}
        if user.status == UserStatus.PENDING_VERIFICATION:
            changes['status'] = UserStatus.ACTIVE

        updated_user = await self.data_source.update_user(user_id, changes)
        self.logger.info("Email verified", data={'user_id': user_id})
        return UserPublic.from_record(updated_user)

    async def set_password_hash(self, user_id: str, password_hash: str) -> None:
        await self.data_source.update_user(user_id, {'password_hash': password_hash})

    # Authorization rules

    @staticmethod
    def can_modify_user(
        target: UserRecord,
        requesting_user_id: Optional[str],
        requesting_user_role: Optional[UserRole]
    ) -> bool:
        if requesting_user_id is not None and target.id == requesting_user_id:
            return True
        if requesting_user_role == UserRole.SUPER_ADMIN:
            return True
        if requesting_user_role == UserRole.MANAGER:
            return target.role == UserRole.USER
        return False

    @staticmethod
    def can_delete_user(
        target: UserRecord,
        requesting_user_id: Optional[str],
        requesting_user_role: Optional[UserRole]
    ) -> bool:
        if requesting_user_id is not None and target.id == requesting_user_id:
            return False
        return requesting_user_role == UserRole.SUPER_ADMIN

    @staticmethod
    def can_view_users_by_role(requesting_user_role: Optional[UserRole]) -> bool:
        return requesting_user_role in STAFF_ROLES

    @staticmethod
    def check_status_transition(current: UserStatus, target: UserStatus) -> None:
        if current == target:
            return
        if target not in STATUS_TRANSITIONS.get(current, set()):
            raise InvalidStatusTransitionError(current.value, target.value)

    def _log_denied(self, action: str, user_id: str, requesting_user_id: Optional[str]):
        self.logger.warn(
            f"Denied attempt to {action} user",
            data={'user_id': user_id, 'by': requesting_user_id}
        )
