"""
Log Writer Configuration
Runtime-mutable settings for the application logger
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .entry import LogLevel

MEGABYTE = 1024 * 1024

# Defaults
DEFAULT_MAX_FILE_SIZE = 10 * MEGABYTE
DEFAULT_MAX_FILES = 5
DEFAULT_LOG_DIR_NAME = "logs"
DEFAULT_BATCH_SIZE = 100
DEFAULT_FLUSH_INTERVAL_MS = 5000


def default_level() -> LogLevel:
    """INFO in production, DEBUG everywhere else"""
    if os.getenv('ENVIRONMENT', 'development') == 'production':
        return LogLevel.INFO
    return LogLevel.DEBUG


@dataclass
class LoggerConfig:
    """Application logger configuration"""
    min_level: LogLevel = field(default_factory=default_level)
    console_enabled: bool = True
    file_logging_enabled: bool = True
    log_directory: Path = field(default_factory=lambda: Path.cwd() / DEFAULT_LOG_DIR_NAME)
    file_prefix: str = "app"
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE
    max_retained_files: int = DEFAULT_MAX_FILES
    batch_size: int = DEFAULT_BATCH_SIZE
    flush_interval_ms: int = DEFAULT_FLUSH_INTERVAL_MS

    def __post_init__(self):
        self.min_level = LogLevel(self.min_level)
        self.log_directory = Path(self.log_directory)
        self.max_retained_files = max(1, self.max_retained_files)

    @classmethod
    def from_settings(cls, settings: Any) -> "LoggerConfig":
        """
        Build configuration from service settings

        Args:
            settings: Object exposing the log_* settings attributes

        Returns:
            LoggerConfig: New configuration
        """
        level_name = settings.log_min_level
        return cls(
            min_level=LogLevel[level_name.upper()] if level_name else default_level(),
            console_enabled=settings.log_console_enabled,
            file_logging_enabled=settings.log_file_enabled,
            log_directory=Path(settings.log_directory),
            file_prefix=settings.log_file_prefix,
            max_file_size_bytes=int(settings.log_max_file_size_mb * MEGABYTE),
            max_retained_files=settings.log_max_files,
            batch_size=settings.log_batch_size,
            flush_interval_ms=settings.log_flush_interval_ms,
        )
