"""
Database Connection Utilities
asyncpg pool for the PostgreSQL user store
"""

import asyncpg
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Database connection pool
_pool: Optional[asyncpg.Pool] = None


async def init_database(database_url: str, min_size: int = 2, max_size: int = 10) -> asyncpg.Pool:
    """Initialize database connection pool"""
    global _pool

    if _pool is not None:
        return _pool

    try:
        _pool = await asyncpg.create_pool(
            database_url,
            min_size=min_size,
            max_size=max_size,
            command_timeout=60
        )
        logger.info("Database connection pool initialized successfully")

        # Test connection
        async with _pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
            logger.info("Database connection test successful")

    except (OSError, asyncpg.PostgresError) as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise

    return _pool


async def close_database():
    """Close database connection pool"""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database connection pool closed")
