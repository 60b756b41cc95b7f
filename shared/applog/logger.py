"""
Application Logger
Leveled logging facade over the console sink and the buffered file writer

The logger is constructed explicitly and handed to the code that needs it.
Nothing here raises into application code.
"""

import atexit
import logging
import re
import signal
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import MEGABYTE, LoggerConfig
from .entry import LogEntry, LogLevel, format_line
from .sinks import ConsoleSink, FileSink, NullFileSink, create_file_sink
from .writer import BufferedLogWriter

logger = logging.getLogger(__name__)

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class AppLogger:
    """Leveled application logger with buffered, rotating file output"""

    def __init__(
        self,
        config: Optional[LoggerConfig] = None,
        console: Optional[ConsoleSink] = None,
        file_sink: Union[FileSink, NullFileSink, None] = None,
        writer: Optional[BufferedLogWriter] = None
    ):
        self.config = config or LoggerConfig()
        self.console = console or ConsoleSink()

        if writer is None:
            if file_sink is None:
                file_sink = self._select_file_sink()
            writer = BufferedLogWriter(self.config, file_sink)
        self.writer = writer

        if not self.writer.enabled:
            self.config.file_logging_enabled = False

        self._opened = False
        self._previous_handlers: Dict[int, Any] = {}

    def _select_file_sink(self) -> Union[FileSink, NullFileSink]:
        if not self.config.file_logging_enabled:
            return NullFileSink()
        return create_file_sink(self.config.log_directory)

    # Lifecycle

    def open(self, install_signal_handlers: bool = False) -> "AppLogger":
        """
        Start file logging

        Args:
            install_signal_handlers: Flush on SIGINT/SIGTERM before chaining
                to the previously installed handler

        Returns:
            AppLogger: self
        """
        if self._opened:
            return self

        self.writer.open()
        atexit.register(self.close)

        if install_signal_handlers:
            self._install_signal_handlers()

        self._opened = True
        return self

    def close(self):
        """Stop the flush timer and flush remaining entries"""
        try:
            self.writer.close()
        except Exception as e:
            logger.error(f"Failed to close log writer: {e}")

        if self._opened:
            atexit.unregister(self.close)
            self._restore_signal_handlers()
            self._opened = False

    def __enter__(self) -> "AppLogger":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _install_signal_handlers(self):
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)
            except ValueError:
                # Only the main thread may install handlers
                logger.warning(f"Cannot install handler for signal {signum} outside the main thread")

    def _restore_signal_handlers(self):
        for signum, handler in self._previous_handlers.items():
            try:
                signal.signal(signum, handler)
            except ValueError:
                pass
        self._previous_handlers = {}

    def _handle_signal(self, signum, frame):
        self.writer.flush()

        previous = self._previous_handlers.get(signum)
        if callable(previous):
            previous(signum, frame)
        elif previous == signal.SIG_DFL:
            signal.signal(signum, signal.SIG_DFL)
            signal.raise_signal(signum)

    # Logging

    def _log(self, level: LogLevel, message: str, context: Optional[str], data: Any):
        if level > self.config.min_level:
            return

        try:
            entry = LogEntry.create(level, message, data=data, context=context)

            if self.config.console_enabled:
                self.console.emit(level, format_line(entry).rstrip("\n"))

            if self.config.file_logging_enabled:
                self.writer.write(format_line(entry))
        except Exception as e:
            logger.error(f"Failed to record log entry: {e}")

    def error(self, message: str, error: Any = None, context: Optional[str] = None):
        self._log(LogLevel.ERROR, message, context, error)

    def warn(self, message: str, data: Any = None, context: Optional[str] = None):
        self._log(LogLevel.WARN, message, context, data)

    def info(self, message: str, data: Any = None, context: Optional[str] = None):
        self._log(LogLevel.INFO, message, context, data)

    def debug(self, message: str, data: Any = None, context: Optional[str] = None):
        self._log(LogLevel.DEBUG, message, context, data)

    def flush(self):
        self.writer.flush()

    # Configuration

    def set_level(self, level: Union[LogLevel, int, str]):
        if isinstance(level, str):
            level = LogLevel[level.upper()]
        self.config.min_level = LogLevel(level)

    def set_log_directory(self, directory: Union[str, Path]):
        """
        Flush into the old directory, then switch to the new one

        With file logging disabled only the configured path changes.
        """
        self.writer.flush()
        self.config.log_directory = Path(directory)
        if not self.config.file_logging_enabled:
            return

        sink = create_file_sink(self.config.log_directory)
        self.writer.sink = sink
        if not sink.available:
            self.config.file_logging_enabled = False
            self.writer.stop_timer()
            return

        self.writer.rotate_if_needed()
        if self._opened:
            self.writer.start_timer()

    def set_max_file_size(self, size_in_mb: float):
        self.config.max_file_size_bytes = int(size_in_mb * MEGABYTE)

    def set_max_files(self, count: int):
        self.config.max_retained_files = max(1, count)

    def set_batch_size(self, size: int):
        self.config.batch_size = size

    def set_flush_interval(self, interval_ms: int):
        self.config.flush_interval_ms = interval_ms
        self.writer.restart_timer()

    # Retrieval

    def get_logs(self, date: Optional[str] = None) -> Optional[str]:
        """
        Read a day's current log file

        Args:
            date: Day as YYYY-MM-DD, defaults to today

        Returns:
            str: File contents, or None when absent or file logging is off
        """
        if not self.config.file_logging_enabled:
            return None
        if date and not _DATE_PATTERN.match(date):
            return None

        name = self.writer.file_name_for(date) if date else self.writer.current_file_name()
        try:
            return self.writer.sink.read_text(name)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read logs: {e}")
            return None

    def get_log_files(self) -> List[str]:
        """List this logger's files, newest first"""
        if not self.config.file_logging_enabled:
            return []

        try:
            files = self.writer.sink.list_files(self.config.file_prefix)
        except OSError as e:
            logger.error(f"Failed to list log files: {e}")
            return []

        files.sort(key=lambda item: (item[1], item[0]), reverse=True)
        return [name for name, _ in files]
