"""
Log Sinks
Console and file destinations for the application logger

The file sink is a capability: either a real directory-backed FileSink or a
NullFileSink, chosen once when the logger is built.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .entry import LogLevel

logger = logging.getLogger(__name__)

CONSOLE_LOGGER_NAME = "starter.console"

_STDLIB_LEVELS = {
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}


class ConsoleSink:
    """Writes formatted entries to a stdlib logger"""

    def __init__(self, name: str = CONSOLE_LOGGER_NAME):
        self.logger = logging.getLogger(name)

    def emit(self, level: LogLevel, text: str):
        self.logger.log(_STDLIB_LEVELS[level], text)


class FileSink:
    """Filesystem access rooted at the log directory"""

    available = True

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        return self.directory / name

    def append(self, name: str, text: str):
        """Append text to a file, creating it if needed"""
        with open(self.path_for(name), 'a', encoding='utf-8', errors='backslashreplace') as f:
            f.write(text)

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    def size(self, name: str) -> int:
        return self.path_for(name).stat().st_size

    def rename(self, name: str, new_name: str):
        os.replace(self.path_for(name), self.path_for(new_name))

    def remove(self, name: str):
        self.path_for(name).unlink()

    def read_text(self, name: str) -> Optional[str]:
        path = self.path_for(name)
        if not path.exists():
            return None
        return path.read_text(encoding='utf-8', errors='replace')

    def list_files(self, prefix: str) -> List[Tuple[str, float]]:
        """
        List log files belonging to a prefix

        Args:
            prefix: Logger file prefix

        Returns:
            list: (file name, modification time) pairs, unordered
        """
        files = []
        for entry in os.scandir(self.directory):
            if entry.is_file() and entry.name.startswith(f"{prefix}-") and entry.name.endswith(".log"):
                files.append((entry.name, entry.stat().st_mtime))
        return files


class NullFileSink:
    """File sink used when the filesystem is unavailable"""

    available = False
    directory = None

    def append(self, name: str, text: str):
        pass

    def exists(self, name: str) -> bool:
        return False

    def size(self, name: str) -> int:
        return 0

    def rename(self, name: str, new_name: str):
        pass

    def remove(self, name: str):
        pass

    def read_text(self, name: str) -> Optional[str]:
        return None

    def list_files(self, prefix: str) -> List[Tuple[str, float]]:
        return []


def create_file_sink(directory: Union[str, Path]) -> Union[FileSink, NullFileSink]:
    """
    Select the file sink for a log directory

    Args:
        directory: Log directory, created if missing

    Returns:
        FileSink when the directory is usable, otherwise NullFileSink
    """
    try:
        os.makedirs(directory, exist_ok=True)
        if not os.access(directory, os.W_OK):
            raise PermissionError(f"Log directory is not writable: {directory}")
    except OSError as e:
        logger.error(f"Failed to initialize file logging in {directory}: {e}")
        return NullFileSink()

    return FileSink(directory)
