"""
Session Stores
Refresh sessions, password reset tokens and email verification tokens

RedisSessionStore keeps everything in Redis with TTL keys (redis.asyncio).
InMemorySessionStore offers the same interface for development and tests.
"""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

# Key prefixes
SESSION_PREFIX = "session"
RESET_TOKEN_PREFIX = "reset"
VERIFY_TOKEN_PREFIX = "verify"


def _token_data(user_id: str, email: str, ttl: int) -> Dict:
    now = datetime.now(timezone.utc)
    return {
        'user_id': user_id,
        'email': email,
        'created_at': now.isoformat(),
        'expires_in': ttl
    }


class SessionStore:
    """Prefix-keyed token storage with expiry"""

    async def _set(self, key: str, data: Dict, ttl: int) -> bool:
        raise NotImplementedError

    async def _get(self, key: str) -> Optional[Dict]:
        raise NotImplementedError

    async def _delete(self, key: str) -> bool:
        raise NotImplementedError

    async def close(self):
        pass

    # Sessions

    async def create_session(self, session_id: str, user_id: str, email: str, ttl: int) -> bool:
        """
        Store a refresh session

        Args:
            session_id: Session ID carried in the refresh token
            user_id: Owner of the session
            email: Owner email
            ttl: Lifetime in seconds

        Returns:
            bool: Success status
        """
        success = await self._set(f"{SESSION_PREFIX}:{session_id}", _token_data(user_id, email, ttl), ttl)
        if success:
            logger.info(f"Session created for user {user_id} with TTL {ttl}s")
        return success

    async def get_session(self, session_id: str) -> Optional[Dict]:
        return await self._get(f"{SESSION_PREFIX}:{session_id}")

    async def delete_session(self, session_id: str) -> bool:
        deleted = await self._delete(f"{SESSION_PREFIX}:{session_id}")
        if not deleted:
            logger.warning(f"Session not found for deletion: {session_id[:10]}...")
        return deleted

    # Password reset tokens

    async def create_reset_token(self, token: str, user_id: str, email: str, ttl: int) -> bool:
        return await self._set(f"{RESET_TOKEN_PREFIX}:{token}", _token_data(user_id, email, ttl), ttl)

    async def get_reset_token(self, token: str) -> Optional[Dict]:
        return await self._get(f"{RESET_TOKEN_PREFIX}:{token}")

    async def delete_reset_token(self, token: str) -> bool:
        return await self._delete(f"{RESET_TOKEN_PREFIX}:{token}")

    # Email verification tokens

    async def create_verification_token(self, token: str, user_id: str, email: str, ttl: int) -> bool:
        return await self._set(f"{VERIFY_TOKEN_PREFIX}:{token}", _token_data(user_id, email, ttl), ttl)

    async def get_verification_token(self, token: str) -> Optional[Dict]:
        return await self._get(f"{VERIFY_TOKEN_PREFIX}:{token}")

    async def delete_verification_token(self, token: str) -> bool:
        return await self._delete(f"{VERIFY_TOKEN_PREFIX}:{token}")


class RedisSessionStore(SessionStore):
    """Tokens as JSON strings under TTL keys"""

    def __init__(self, client: aioredis.Redis):
        self.client = client

    @classmethod
    async def connect(cls, redis_url: str) -> "RedisSessionStore":
        """Open a client from a redis:// URL and check it responds"""
        client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_keepalive=True,
            health_check_interval=30
        )
        await client.ping()
        logger.info("Async Redis client initialized successfully")
        return cls(client)

    async def close(self):
        await self.client.aclose()
        logger.info("Async Redis client closed")

    async def _set(self, key: str, data: Dict, ttl: int) -> bool:
        if ttl <= 0:
            logger.error(f"Invalid TTL for {key.split(':')[0]}: {ttl}")
            return False

        try:
            return bool(await self.client.setex(key, ttl, json.dumps(data)))
        except aioredis.RedisError as e:
            logger.error(f"Error storing {key.split(':')[0]} token: {e}")
            return False

    async def _get(self, key: str) -> Optional[Dict]:
        try:
            raw = await self.client.get(key)
        except aioredis.RedisError as e:
            logger.error(f"Error retrieving {key.split(':')[0]} token: {e}")
            return None

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Discarding malformed {key.split(':')[0]} token data")
            return None

    async def _delete(self, key: str) -> bool:
        try:
            return await self.client.delete(key) > 0
        except aioredis.RedisError as e:
            logger.error(f"Error deleting {key.split(':')[0]} token: {e}")
            return False


class InMemorySessionStore(SessionStore):
    """Dict of key -> (expiry, data); expired entries are dropped on read"""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Dict]] = {}

    async def _set(self, key: str, data: Dict, ttl: int) -> bool:
        if ttl <= 0:
            return False
        self._entries[key] = (self._clock() + ttl, dict(data))
        return True

    async def _get(self, key: str) -> Optional[Dict]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, data = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return dict(data)

    async def _delete(self, key: str) -> bool:
        if await self._get(key) is None:
            return False
        del self._entries[key]
        return True


async def create_session_store(redis_url: str) -> SessionStore:
    """Redis when a URL is configured, otherwise in-process"""
    if redis_url:
        return await RedisSessionStore.connect(redis_url)

    logger.warning("REDIS_URL not set, sessions are kept in process memory")
    return InMemorySessionStore()
