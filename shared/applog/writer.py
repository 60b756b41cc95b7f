"""
Buffered Log Writer
Batches formatted log lines and appends them to a day-based log file

Flushes when the buffer reaches the batch size or when the periodic timer
fires. After each flush the current file is checked against the size limit
and rotated to a timestamped name; the oldest files beyond the retention
count are then deleted. Failures are reported to the module logger and never
raised to the caller.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from .config import LoggerConfig
from .entry import iso_timestamp
from .sinks import FileSink, NullFileSink

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FlushTimer:
    """Daemon thread calling a function at a fixed interval"""

    def __init__(self, interval_seconds: float, function: Callable[[], None]):
        self.interval_seconds = interval_seconds
        self.function = function
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name="log-flush-timer", daemon=True)

    def start(self):
        self._thread.start()

    def stop(self):
        self._stopped.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval_seconds + 1)

    def _run(self):
        while not self._stopped.wait(self.interval_seconds):
            try:
                self.function()
            except Exception as e:
                logger.error(f"Periodic log flush failed: {e}")


class BufferedLogWriter:
    """Buffered, size-rotated log file writer"""

    def __init__(
        self,
        config: LoggerConfig,
        sink: Union[FileSink, NullFileSink],
        clock: Callable[[], datetime] = _utc_now
    ):
        self.config = config
        self.sink = sink
        self.clock = clock
        self.flush_count = 0
        self.rotation_count = 0
        self._buffer: List[str] = []
        self._lock = threading.RLock()
        self._timer: Optional[FlushTimer] = None

    @property
    def enabled(self) -> bool:
        return self.sink.available

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def file_name_for(self, date: str) -> str:
        return f"{self.config.file_prefix}-{date}.log"

    def current_file_name(self) -> str:
        """Name of today's current log file (UTC date)"""
        return self.file_name_for(self.clock().strftime('%Y-%m-%d'))

    def rotated_file_name(self) -> str:
        stamp = iso_timestamp(self.clock()).replace(':', '-').replace('.', '-')
        name = f"{self.config.file_prefix}-{stamp}.log"

        suffix = 1
        while self.sink.exists(name):
            name = f"{self.config.file_prefix}-{stamp}-{suffix}.log"
            suffix += 1
        return name

    # Lifecycle

    def open(self):
        """Rotate a leftover oversized file and start the flush timer"""
        if not self.enabled:
            return
        self.rotate_if_needed()
        self.start_timer()

    def close(self):
        """Stop the timer and flush whatever is buffered"""
        self.stop_timer()
        self.flush()

    def start_timer(self):
        if self._timer is not None or self.config.flush_interval_ms <= 0:
            return
        self._timer = FlushTimer(self.config.flush_interval_ms / 1000.0, self.flush)
        self._timer.start()

    def stop_timer(self):
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def restart_timer(self):
        """Apply a changed flush interval"""
        if self._timer is None:
            return
        self.stop_timer()
        self.start_timer()

    # Writing

    def write(self, line: str):
        """
        Buffer a formatted line, flushing once the batch is full

        Args:
            line: Formatted log line, newline terminated
        """
        if not self.enabled:
            return

        with self._lock:
            self._buffer.append(line)
            if len(self._buffer) >= self.config.batch_size:
                self.flush()

    def flush(self):
        """Append the whole buffer to the current file as a single write"""
        with self._lock:
            if not self._buffer or not self.enabled:
                return

            chunk = ''.join(self._buffer)
            self._buffer = []

            try:
                # Never append into a file that is already over the limit
                self.rotate_if_needed()

                name = self.current_file_name()
                self.sink.append(name, chunk)
                self.flush_count += 1
            except Exception as e:
                logger.error(f"Failed to flush logs: {e}")
                return

            try:
                if self.sink.size(name) >= self.config.max_file_size_bytes:
                    self.rotate_if_needed()
            except Exception as e:
                logger.error(f"Failed to check log file size: {e}")

    # Rotation and retention

    def rotate_if_needed(self):
        """Rename an oversized current file, then apply retention"""
        with self._lock:
            name = self.current_file_name()

            try:
                if self.sink.exists(name) and self.sink.size(name) >= self.config.max_file_size_bytes:
                    rotated = self.rotated_file_name()
                    self.sink.rename(name, rotated)
                    self.rotation_count += 1
                    logger.debug(f"Rotated log file {name} to {rotated}")
            except OSError as e:
                logger.error(f"Failed to rotate logs: {e}")
                return

            self.cleanup_old_files()

    def cleanup_old_files(self):
        """Delete the oldest log files beyond the retention count"""
        with self._lock:
            try:
                files = self.sink.list_files(self.config.file_prefix)
            except OSError as e:
                logger.error(f"Failed to cleanup old logs: {e}")
                return

            files.sort(key=lambda item: item[1], reverse=True)
            active = self.current_file_name()

            for name, _ in files[self.config.max_retained_files:]:
                if name == active:
                    continue
                try:
                    self.sink.remove(name)
                except OSError as e:
                    logger.error(f"Failed to delete old log file {name}: {e}")
