"""
Authentication Service
Registration, login, token rotation and account recovery
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from shared.applog import AppLogger
from shared.schemas.auth import AuthResponse, AuthTokens, RegisterRequest, TokenPayload
from shared.schemas.user import ProfileUpdateSchema, UserCreateSchema, UserPublic, UserRecord, UserStatus
from shared.services import UserNotFoundError, UserService, UserServiceError
from shared.utils.security import (
    REFRESH_TOKEN_TYPE,
    SecurityUtils,
    generate_secure_token,
    hash_password,
    verify_password,
)

from app.utils.notification_client import NotificationError, Notifier, OutboxNotifier
from app.utils.redis_session import SessionStore

logger = logging.getLogger(__name__)

HOUR = 3600
DAY = 24 * HOUR

BLOCKED_STATUSES = (UserStatus.INACTIVE, UserStatus.SUSPENDED)


class AuthenticationError(UserServiceError):
    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class AccountDisabledError(UserServiceError):
    def __init__(self, message: str = "Account is deactivated"):
        super().__init__(message)


class InvalidTokenError(UserServiceError):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class AuthService:
    """User authentication on top of UserService and a session store"""

    def __init__(
        self,
        user_service: UserService,
        sessions: SessionStore,
        security: SecurityUtils,
        app_logger: AppLogger,
        notifier: Optional[Notifier] = None,
        verification_ttl_hours: int = 48,
        reset_ttl_hours: int = 24
    ):
        self.user_service = user_service
        self.sessions = sessions
        self.security = security
        self.app_logger = app_logger
        self.notifier = notifier or OutboxNotifier()
        self.verification_ttl = verification_ttl_hours * HOUR
        self.reset_ttl = reset_ttl_hours * HOUR

    @property
    def refresh_ttl(self) -> int:
        return self.security.refresh_token_expire_days * DAY

    async def _issue_tokens(self, user_id: str, email: str, role: str) -> AuthTokens:
        """Start a refresh session and sign a token pair for it"""
        session_id = generate_secure_token(16)
        if not await self.sessions.create_session(session_id, user_id, email, self.refresh_ttl):
            raise UserServiceError("Failed to create session")

        return AuthTokens(
            access_token=self.security.create_access_token(user_id, email, role),
            refresh_token=self.security.create_refresh_token(user_id, email, role, session_id),
            expires_in=self.security.access_token_ttl
        )

    async def register(self, data: RegisterRequest) -> Dict:
        """
        Register a new user

        Args:
            data: Registration payload

        Returns:
            dict: user, tokens and the email verification token
        """
        user = await self.user_service.create_user(UserCreateSchema(**data.model_dump()))

        verification_token = generate_secure_token()
        await self.sessions.create_verification_token(
            verification_token, user.id, user.email, self.verification_ttl
        )
        await self._deliver(
            self.notifier.send_verification_email, user.email, user.first_name, verification_token
        )

        tokens = await self._issue_tokens(user.id, user.email, user.role.value)
        logger.info(f"User registered: {user.id}")

        return {
            'user': user,
            'tokens': tokens,
            'verification_token': verification_token
        }

    async def login(self, email: str, password: str) -> AuthResponse:
        """
        Check credentials and open a session

        Raises:
            AuthenticationError: Unknown email or wrong password
            AccountDisabledError: Account is inactive or suspended
        """
        user = await self.user_service.get_user_record_by_email(email)
        if not user or not user.password_hash:
            raise AuthenticationError()

        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            self.app_logger.warn("Failed login attempt", data={'user_id': user.id})
            raise AuthenticationError()

        if user.status in BLOCKED_STATUSES:
            self.app_logger.warn("Login blocked for disabled account", data={'user_id': user.id, 'status': user.status.value})
            raise AccountDisabledError()

        tokens = await self._issue_tokens(user.id, user.email, user.role.value)
        self.app_logger.info("User logged in", data={'user_id': user.id})
        return AuthResponse(user=UserPublic.from_record(user), tokens=tokens)

    async def refresh(self, refresh_token: str) -> AuthTokens:
        """Exchange a refresh token for a new pair; the old session ends"""
        payload = self.security.decode_token(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        if not payload or not payload.get('sid'):
            raise InvalidTokenError()

        session_id = payload['sid']
        session = await self.sessions.get_session(session_id)
        if not session or session.get('user_id') != payload.get('sub'):
            raise InvalidTokenError()

        await self.sessions.delete_session(session_id)

        user = await self.user_service.get_user_record(payload['sub'])
        if not user:
            raise InvalidTokenError()
        if user.status in BLOCKED_STATUSES:
            raise AccountDisabledError()

        return await self._issue_tokens(user.id, user.email, user.role.value)

    async def logout(self, refresh_token: str) -> bool:
        payload = self.security.decode_token(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        if not payload or not payload.get('sid'):
            return False

        deleted = await self.sessions.delete_session(payload['sid'])
        if deleted:
            logger.info(f"User logged out: {payload.get('sub')}")
        return deleted

    async def get_profile(self, user_id: str) -> UserPublic:
        user = await self.user_service.get_user_by_id(user_id)
        if not user:
            raise UserNotFoundError()
        return user

    async def update_profile(self, current_user: TokenPayload, data: ProfileUpdateSchema) -> UserPublic:
        """Self-service update limited to profile fields"""
        return await self.user_service.update_user(
            current_user.user_id,
            data.model_dump(exclude_none=True),
            requesting_user_id=current_user.user_id,
            requesting_user_role=current_user.role
        )

    async def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        user = await self._require_record(user_id)

        if not user.password_hash or not await asyncio.to_thread(verify_password, current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        await self._store_password(user, new_password)
        self.app_logger.info("Password changed", data={'user_id': user_id})

    async def verify_email(self, token: str) -> UserPublic:
        token_data = await self.sessions.get_verification_token(token)
        if not token_data:
            raise InvalidTokenError("Invalid or expired verification token")

        user = await self.user_service.mark_email_verified(token_data['user_id'])
        await self.sessions.delete_verification_token(token)
        return user

    async def request_password_reset(self, email: str) -> Optional[str]:
        """
        Issue a reset token when the email is registered

        Returns:
            str: Reset token, or None for unknown emails
        """
        user = await self.user_service.get_user_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return None

        reset_token = generate_secure_token()
        if not await self.sessions.create_reset_token(reset_token, user.id, user.email, self.reset_ttl):
            raise UserServiceError("Failed to generate reset token")

        await self._deliver(
            self.notifier.send_password_reset_email, user.email, user.first_name, reset_token,
            self.reset_ttl // HOUR
        )

        self.app_logger.info("Password reset requested", data={'user_id': user.id})
        return reset_token

    async def reset_password(self, token: str, new_password: str) -> None:
        token_data = await self.sessions.get_reset_token(token)
        if not token_data:
            raise InvalidTokenError("Invalid or expired reset token")

        # Single use: consume before changing anything
        await self.sessions.delete_reset_token(token)

        user = await self._require_record(token_data['user_id'])
        await self._store_password(user, new_password)
        self.app_logger.info("Password reset completed", data={'user_id': user.id})

    async def _deliver(self, send: Callable[..., Awaitable], *args) -> bool:
        """Hand an email to the notifier; delivery failures never block the flow"""
        try:
            await send(*args)
        except NotificationError as e:
            self.app_logger.error("Failed to deliver email", error=e)
            return False
        return True

    async def _require_record(self, user_id: str) -> UserRecord:
        user = await self.user_service.get_user_record(user_id)
        if not user:
            raise UserNotFoundError()
        return user

    async def _store_password(self, user: UserRecord, password: str):
        password_hash = await asyncio.to_thread(hash_password, password)
        await self.user_service.set_password_hash(user.id, password_hash)
