"""
Log Entries
Log levels, immutable log entries and the line format used by every sink
"""

import json
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Optional


class LogLevel(IntEnum):
    """Log level enumeration (lower value means higher priority)"""
    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Render a UTC ISO-8601 timestamp with millisecond precision

    Args:
        moment: Time to render, defaults to now

    Returns:
        str: Timestamp such as 2025-01-01T12:00:00.000Z
    """
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass(frozen=True)
class LogEntry:
    """Single immutable log entry"""
    level: LogLevel
    message: str
    timestamp: str
    context: Optional[str] = None
    data: Any = None
    error: Optional[BaseException] = None
    stack: Optional[str] = None

    @classmethod
    def create(
        cls,
        level: LogLevel,
        message: str,
        data: Any = None,
        context: Optional[str] = None,
        timestamp: Optional[str] = None
    ) -> "LogEntry":
        """
        Build an entry, capturing exception details separately from data

        Args:
            level: Entry level
            message: Log message
            data: Optional structured value or exception
            context: Optional context label
            timestamp: Override for the entry timestamp

        Returns:
            LogEntry: New entry
        """
        timestamp = timestamp or iso_timestamp()

        if isinstance(data, BaseException):
            stack = ''.join(traceback.format_exception(type(data), data, data.__traceback__)).rstrip()
            return cls(
                level=level,
                message=message,
                timestamp=timestamp,
                context=context,
                data={
                    'name': type(data).__name__,
                    'message': str(data),
                    'stack': stack,
                },
                error=data,
                stack=stack,
            )

        return cls(level=level, message=message, timestamp=timestamp, context=context, data=data)


def format_entry(entry: LogEntry) -> str:
    """Format the single header line of an entry"""
    level_str = entry.level.name.ljust(5)
    context_str = f"[{entry.context}]" if entry.context else ""
    return f"[{entry.timestamp}] {level_str} {context_str} {entry.message}"


def format_line(entry: LogEntry) -> str:
    """Format an entry for the log file, including data and stack blocks"""
    line = format_entry(entry)

    if entry.data is not None:
        line += "\n  Data: " + json.dumps(entry.data, indent=2, default=str)

    if entry.stack:
        line += "\n  Stack: " + entry.stack

    return line + "\n"
