"""
PostgreSQL Data Source
asyncpg-backed user storage for the backend API
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import asyncpg

from shared.schemas.user import UserRecord, UserRole

from ..exceptions import DataSourceError, EmailAlreadyExistsError, UserNotFoundError
from .base import DataSource, with_password_hash

logger = logging.getLogger(__name__)

USERS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    email VARCHAR(255) NOT NULL UNIQUE,
    password_hash VARCHAR(255),
    first_name VARCHAR(50),
    last_name VARCHAR(50),
    profile_photo TEXT,
    phone VARCHAR(20),
    date_of_birth VARCHAR(10),
    address VARCHAR(255),
    emergency_contact VARCHAR(255),
    department VARCHAR(100),
    role VARCHAR(20) NOT NULL DEFAULT 'USER',
    status VARCHAR(30) NOT NULL DEFAULT 'PENDING_VERIFICATION',
    email_verified BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_users_role ON users (role);
"""

USER_COLUMNS = """
id, email, password_hash, first_name, last_name, profile_photo, phone,
date_of_birth, address, emergency_contact, department, role, status,
email_verified, created_at, updated_at
"""

# Columns callers may set; everything else is managed here
WRITABLE_COLUMNS = (
    'email', 'password_hash', 'first_name', 'last_name', 'profile_photo', 'phone',
    'date_of_birth', 'address', 'emergency_contact', 'department', 'role', 'status',
    'email_verified',
)


def _to_db_value(value: Any) -> Any:
    """Enums are stored by value"""
    return getattr(value, 'value', value)


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _row_to_record(row) -> UserRecord:
    data = dict(row)
    data['id'] = str(data['id'])
    return UserRecord(**data)


class PostgresDataSource(DataSource):
    """User storage on a PostgreSQL users table"""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def _run(self, action: str, method: str, query: str, *args):
        """
        Run one statement on a pooled connection

        Args:
            action: Description used in error messages
            method: Connection method name (fetchrow, fetch or execute)
            query: SQL text
            *args: Query parameters

        Raises:
            EmailAlreadyExistsError: The email unique constraint was violated
            DataSourceError: Any other database failure
        """
        try:
            async with self.pool.acquire() as conn:
                return await getattr(conn, method)(query, *args)
        except asyncpg.UniqueViolationError as e:
            logger.warning(f"Unique violation while trying to {action}: {e}")
            raise EmailAlreadyExistsError()
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to {action}: {e}")
            raise DataSourceError(f"Failed to {action}: {e}")

    async def ensure_schema(self):
        """Create the users table if it does not exist"""
        await self._run("create users table", "execute", USERS_TABLE_SQL)
        logger.info("Users table ensured")

    async def create_user(self, data: Dict[str, Any]) -> UserRecord:
        """
        Insert a new user

        Args:
            data: Column values; a plain password is hashed first

        Returns:
            UserRecord: Stored user
        """
        data = await with_password_hash(data)
        columns = [column for column in WRITABLE_COLUMNS if column in data]
        placeholders = ', '.join(f"${index}" for index in range(1, len(columns) + 1))
        query = f"""
        INSERT INTO users ({', '.join(columns)})
        VALUES ({placeholders})
        RETURNING {USER_COLUMNS}
        """

        row = await self._run(
            "create user", "fetchrow", query, *[_to_db_value(data[column]) for column in columns]
        )

        logger.info(f"User created with ID: {row['id']}")
        return _row_to_record(row)

    async def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        if not _is_uuid(user_id):
            return None

        query = f"SELECT {USER_COLUMNS} FROM users WHERE id = $1"
        row = await self._run("get user", "fetchrow", query, user_id)

        return _row_to_record(row) if row else None

    async def update_user(self, user_id: str, data: Dict[str, Any]) -> UserRecord:
        """
        Update user columns

        Args:
            user_id: User ID
            data: Column values to change

        Returns:
            UserRecord: Updated user
        """
        if not _is_uuid(user_id):
            raise UserNotFoundError()

        set_clauses = []
        values = []

        for key, value in data.items():
            if key in WRITABLE_COLUMNS:
                values.append(_to_db_value(value))
                set_clauses.append(f"{key} = ${len(values)}")

        values.append(datetime.now(timezone.utc))
        set_clauses.append(f"updated_at = ${len(values)}")

        values.append(user_id)
        query = f"""
        UPDATE users
        SET {', '.join(set_clauses)}
        WHERE id = ${len(values)}
        RETURNING {USER_COLUMNS}
        """

        row = await self._run(f"update user {user_id}", "fetchrow", query, *values)

        if not row:
            raise UserNotFoundError()
        return _row_to_record(row)

    async def delete_user(self, user_id: str) -> None:
        if not _is_uuid(user_id):
            raise UserNotFoundError()

        result = await self._run(f"delete user {user_id}", "execute", "DELETE FROM users WHERE id = $1", user_id)

        if result != "DELETE 1":
            raise UserNotFoundError()

    async def get_users_by_role(self, role: UserRole) -> List[UserRecord]:
        query = f"SELECT {USER_COLUMNS} FROM users WHERE role = $1 ORDER BY created_at DESC"
        rows = await self._run("list users by role", "fetch", query, _to_db_value(role))

        return [_row_to_record(row) for row in rows]

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        query = f"SELECT {USER_COLUMNS} FROM users WHERE email = $1"
        row = await self._run("get user by email", "fetchrow", query, email)

        return _row_to_record(row) if row else None
