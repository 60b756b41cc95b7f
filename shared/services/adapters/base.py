"""
Data Source Interface
Storage contract the user service is written against
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from shared.schemas.user import UserRecord, UserRole
from shared.utils.security import hash_password


async def with_password_hash(data: Dict[str, Any]) -> Dict[str, Any]:
    """Replace a plain password with its bcrypt hash, off the event loop"""
    prepared = dict(data)
    password = prepared.pop('password', None)
    if password is not None:
        prepared['password_hash'] = await asyncio.to_thread(hash_password, password)
    return prepared


class DataSource(ABC):
    """Pluggable user storage backend"""

    @abstractmethod
    async def create_user(self, data: Dict[str, Any]) -> UserRecord:
        """Persist a new user; a plain "password" entry is hashed by the store"""

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def update_user(self, user_id: str, data: Dict[str, Any]) -> UserRecord:
        ...

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        ...

    @abstractmethod
    async def get_users_by_role(self, role: UserRole) -> List[UserRecord]:
        """Users with the given role, newest first"""

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...
