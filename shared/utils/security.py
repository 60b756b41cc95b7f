"""
Security utilities for the App Starter Kit

Provides password hashing, JWT access/refresh tokens and token generation.
"""

import re
import secrets
import logging
from typing import Optional, Dict, Any
from datetime import datetime, timedelta, timezone
import bcrypt
import jwt

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
BCRYPT_MAX_BYTES = 72

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class SecurityUtils:
    """Security utilities class"""

    def __init__(
        self,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        access_token_expire_minutes: int = 15,
        refresh_token_expire_days: int = 7
    ):
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.access_token_expire_minutes = access_token_expire_minutes
        self.refresh_token_expire_days = refresh_token_expire_days

    @property
    def access_token_ttl(self) -> int:
        """Access token lifetime in seconds"""
        return self.access_token_expire_minutes * 60

    def _encode(self, payload: Dict[str, Any], expires_delta: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload_copy = payload.copy()
        payload_copy["iat"] = now
        payload_copy["exp"] = now + expires_delta
        payload_copy["jti"] = secrets.token_hex(8)
        return jwt.encode(payload_copy, self.jwt_secret, algorithm=self.jwt_algorithm)

    def create_access_token(self, user_id: str, email: str, role: str) -> str:
        """
        Generate a short-lived access token

        Args:
            user_id: User ID
            email: User email
            role: User role value

        Returns:
            JWT token string
        """
        return self._encode(
            {"sub": str(user_id), "email": email, "role": role, "type": ACCESS_TOKEN_TYPE},
            timedelta(minutes=self.access_token_expire_minutes)
        )

    def create_refresh_token(self, user_id: str, email: str, role: str, session_id: str) -> str:
        """
        Generate a refresh token bound to a session

        Args:
            user_id: User ID
            email: User email
            role: User role value
            session_id: Session the token belongs to

        Returns:
            JWT token string
        """
        return self._encode(
            {
                "sub": str(user_id),
                "email": email,
                "role": role,
                "sid": session_id,
                "type": REFRESH_TOKEN_TYPE,
            },
            timedelta(days=self.refresh_token_expire_days)
        )

    def decode_token(self, token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> Optional[Dict[str, Any]]:
        """
        Verify and decode JWT token

        Args:
            token: JWT token string
            expected_type: Required value of the "type" claim

        Returns:
            Decoded payload or None if invalid
        """
        try:
            payload = jwt.decode(token, self.jwt_secret, algorithms=[self.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Token has expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            return None

        if payload.get("type") != expected_type:
            logger.warning(f"Unexpected token type: {payload.get('type')}")
            return None

        return payload


def _password_bytes(password: str) -> bytes:
    """bcrypt input: the first 72 bytes, as older bcrypt releases used implicitly"""
    return password.encode('utf-8')[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(_password_bytes(password), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed_password.encode('utf-8'))
    except ValueError as e:
        logger.error(f"Failed to verify password: {e}")
        return False


def generate_secure_token(length: int = 32) -> str:
    """Generate a URL-safe random token"""
    return secrets.token_urlsafe(length)


def validate_email(email: str) -> bool:
    """Check the local@domain.tld shape"""
    return bool(email) and bool(EMAIL_PATTERN.match(email))
