"""
Shared pytest fixtures for HOMERUN switcher driver tests.

This module provides common fixtures used across unit and integration tests,
including mock loggers, a scripted in-memory transport, and config files.
"""

import pytest
from unittest.mock import Mock, MagicMock, patch
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from homerun_exceptions import TransportIOFailed, TransportOpenFailed
from homerun_serial import Transport


class FakeTransport(Transport):
    """In-memory transport with scripted replies.

    ``replies`` is consumed one item per read: bytes are returned as a chunk,
    ``b''`` simulates a timeout, and an exception instance is raised.
    Once the script runs out every read times out.
    """

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.writes = []
        self.reads = 0
        self.opened_with = None
        self.is_open = False
        self.fail_open = False
        self.fail_write = False
        self.fail_close = False

    def open(self, config):
        if self.fail_open:
            raise TransportOpenFailed("port busy")
        self.opened_with = config
        self.is_open = True

    def write(self, data):
        if self.fail_write:
            raise TransportIOFailed("write failed")
        self.writes.append(data.decode('ascii'))

    def read(self, timeout_ms):
        self.reads += 1
        if not self.replies:
            return b''
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def close(self):
        self.is_open = False
        if self.fail_close:
            raise TransportIOFailed("close failed")

    def queue(self, *replies):
        self.replies.extend(replies)


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing.

    Returns:
        Mock logger with standard logging methods.
    """
    logger = Mock()
    logger.debug = Mock()
    logger.info = Mock()
    logger.warning = Mock()
    logger.error = Mock()
    logger.critical = Mock()
    return logger


@pytest.fixture
def no_sleep():
    """Patch out settle and retry delays.

    Yields:
        The sleep mock, so tests can inspect the requested delays.
    """
    with patch('homerun_serial.time.sleep') as mock:
        yield mock


@pytest.fixture
def fake_transport():
    """Scripted transport with no replies queued."""
    return FakeTransport()


@pytest.fixture
def connected_switcher(fake_transport, mock_logger, no_sleep):
    """HomerunMatrixSwitcher connected over the fake transport.

    Returns:
        The switcher; its transport is ``fake_transport``.
    """
    from HomerunDevice import HomerunMatrixSwitcher
    switcher = HomerunMatrixSwitcher(fake_transport, mock_logger)
    switcher.connect()
    return switcher


@pytest.fixture
def mock_serial_port():
    """Mock pyserial port returned by serial_for_url.

    Yields:
        MagicMock serial port instance.
    """
    with patch('homerun_serial.serial.serial_for_url') as mock:
        instance = MagicMock()
        instance.is_open = True
        instance.in_waiting = 0
        instance.read = Mock(return_value=b'')
        instance.write = Mock(return_value=0)
        instance.flush = Mock()
        instance.close = Mock()
        mock.return_value = instance
        yield instance


@pytest.fixture
def mock_config():
    """Create mock server configuration object.

    Returns:
        Mock config with standard properties.
    """
    config = Mock()
    config.ip_address = ''
    config.port = 5555
    config.threads = 4
    config.verbose_driver_exceptions = True
    config.log_level = 10  # DEBUG
    config.log_to_stdout = False
    config.max_size_mb = 5
    config.num_keep_logs = 10
    return config


# Utility fixtures

@pytest.fixture
def temp_toml_file(tmp_path):
    """Create a temporary server TOML config file for testing.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary config file.
    """
    config_content = """
title = "Test Config"

[network]
ip_address = ''
port = 5555
threads = 4

[server]
verbose_driver_exceptions = true

[logging]
log_level = 'DEBUG'
log_to_stdout = false
max_size_mb = 5
num_keep_logs = 10
"""
    config_file = tmp_path / "test_config.toml"
    config_file.write_text(config_content)
    return config_file


@pytest.fixture
def temp_device_toml(tmp_path):
    """Create a temporary HomerunConfig.toml for testing.

    Returns:
        Path to the config file.
    """
    config_content = """
[device]
dev_port = 'loop://'
baud_rate = 9600
data_bits = 8
stop_bits = 1
parity = 'none'
flow_control = 'none'

[timing]
command_delay_ms = 50
reset_delay_ms = 8000
read_timeout_ms = 1500
read_attempts = 4
retry_delay_ms = 20
"""
    config_file = tmp_path / "HomerunConfig.toml"
    config_file.write_text(config_content)
    return config_file
