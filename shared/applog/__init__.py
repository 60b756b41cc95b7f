"""
Application logging for the starter kit

Buffered, size-rotated file logging behind a small leveled facade.
"""

from .config import LoggerConfig
from .entry import LogEntry, LogLevel, format_entry, format_line
from .logger import AppLogger
from .sinks import ConsoleSink, FileSink, NullFileSink, create_file_sink
from .writer import BufferedLogWriter

__all__ = [
    "AppLogger",
    "BufferedLogWriter",
    "ConsoleSink",
    "FileSink",
    "LogEntry",
    "LogLevel",
    "LoggerConfig",
    "NullFileSink",
    "create_file_sink",
    "format_entry",
    "format_line",
]
