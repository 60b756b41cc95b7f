"""
In-Memory Data Source
Dict-backed user storage for local development and tests
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from shared.schemas.user import UserRecord, UserRole

from ..exceptions import UserNotFoundError
from .base import DataSource, with_password_hash


class InMemoryDataSource(DataSource):
    """Keeps users in a dict keyed by ID"""

    def __init__(self):
        self._users: Dict[str, UserRecord] = {}

    async def create_user(self, data: Dict[str, Any]) -> UserRecord:
        data = await with_password_hash(data)
        now = datetime.now(timezone.utc)
        user = UserRecord(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            **data
        )
        self._users[user.id] = user
        return user.model_copy()

    async def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    async def update_user(self, user_id: str, data: Dict[str, Any]) -> UserRecord:
        user = self._users.get(user_id)
        if not user:
            raise UserNotFoundError()

        updated = user.model_copy(update={**data, 'updated_at': datetime.now(timezone.utc)})
        self._users[user_id] = updated
        return updated.model_copy()

    async def delete_user(self, user_id: str) -> None:
        if self._users.pop(user_id, None) is None:
            raise UserNotFoundError()

    async def get_users_by_role(self, role: UserRole) -> List[UserRecord]:
        users = [user for user in self._users.values() if user.role == role]
        users.sort(key=lambda user: user.created_at, reverse=True)
        return [user.model_copy() for user in users]

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for user in self._users.values():
            if user.email == email:
                return user.model_copy()
        return None
