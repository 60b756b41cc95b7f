"""
Pytest fixtures for the shared packages
"""

import pytest
from datetime import datetime, timezone

from shared.applog import AppLogger, BufferedLogWriter, FileSink, LoggerConfig, LogLevel
from shared.services import InMemoryDataSource, UserService

FIXED_NOW = datetime(2025, 1, 15, 12, 30, 0, tzinfo=timezone.utc)


def _fixed_now():
    return FIXED_NOW


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2025-01-15 12:30 UTC"""
    return _fixed_now


@pytest.fixture
def log_config(tmp_path):
    """File logging into tmp_path with no flush timer"""
    return LoggerConfig(
        min_level=LogLevel.DEBUG,
        console_enabled=False,
        file_logging_enabled=True,
        log_directory=tmp_path,
        file_prefix="app",
        batch_size=100,
        flush_interval_ms=0,
    )


@pytest.fixture
def writer(log_config, fixed_clock):
    return BufferedLogWriter(log_config, FileSink(log_config.log_directory), clock=fixed_clock)


@pytest.fixture
def app_logger(log_config, writer):
    app_logger = AppLogger(log_config, writer=writer)
    yield app_logger
    app_logger.close()


@pytest.fixture
def quiet_logger():
    """Console-only logger with file output disabled"""
    return AppLogger(LoggerConfig(console_enabled=False, file_logging_enabled=False))


@pytest.fixture
def data_source():
    return InMemoryDataSource()


@pytest.fixture
def user_service(data_source, quiet_logger):
    return UserService(data_source, logger=quiet_logger)
