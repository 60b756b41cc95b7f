"""
User storage adapters
"""

from .base import DataSource, with_password_hash
from .memory import InMemoryDataSource
from .postgres import PostgresDataSource, USERS_TABLE_SQL
from .api import ApiDataSource

__all__ = [
    'DataSource',
    'with_password_hash',
    'InMemoryDataSource',
    'PostgresDataSource',
    'USERS_TABLE_SQL',
    'ApiDataSource',
]
