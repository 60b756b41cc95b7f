"""
Shared service layer: user management and its storage adapters
"""

from .adapters import ApiDataSource, DataSource, InMemoryDataSource, PostgresDataSource
from .exceptions import (
    DataSourceError,
    EmailAlreadyExistsError,
    InvalidEmailError,
    InvalidStatusTransitionError,
    UnauthorizedActionError,
    UserNotFoundError,
    UserServiceError,
)
from .user_service import STATUS_TRANSITIONS, UserService

__all__ = [
    'ApiDataSource',
    'DataSource',
    'InMemoryDataSource',
    'PostgresDataSource',
    'DataSourceError',
    'EmailAlreadyExistsError',
    'InvalidEmailError',
    'InvalidStatusTransitionError',
    'UnauthorizedActionError',
    'UserNotFoundError',
    'UserServiceError',
    'STATUS_TRANSITIONS',
    'UserService',
]
