"""
Shared utilities for the App Starter Kit

This package contains common utilities used by the backend API and the
shared service layer.
"""

from .logger import setup_logging, get_audit_logger, AuditLogger
from .security import (
    SecurityUtils, hash_password, verify_password, generate_secure_token, validate_email
)

__all__ = [
    "setup_logging",
    "get_audit_logger",
    "AuditLogger",
    "SecurityUtils",
    "hash_password",
    "verify_password",
    "generate_secure_token",
    "validate_email",
]

__version__ = "1.0.0"
