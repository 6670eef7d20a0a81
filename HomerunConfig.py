# -*- coding: utf-8 -*-
# -----------------------------------------------------------------------------
# HomerunConfig.py - HOMERUN switcher persistent configuration file. Adapted
# from Alpyca's config.py
#
# Python Compatibility: Requires Python 3.8 or later
#
# -----------------------------------------------------------------------------
# MIT License
#
# Copyright (c) 2022-2024 Bob Denny
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
# -----------------------------------------------------------------------------

import threading
from pathlib import Path
from typing import Any, Dict

import toml

from homerun_serial import (
    DEFAULT_COMMAND_DELAY_MS,
    DEFAULT_READ_ATTEMPTS,
    DEFAULT_READ_TIMEOUT_MS,
    DEFAULT_RESET_DELAY_MS,
    DEFAULT_RETRY_DELAY_MS,
)
from homerun_types import SUPPORTED_BAUD_RATES, FlowControl, Parity, SerialConfig


class HomerunConfigError(Exception):
    """Custom exception for HOMERUN configuration errors"""
    pass


class HomerunConfig:
    """Device configuration with thread-safe TOML persistence.

    For docker-based installations, looks for /homerun/HomerunConfig.toml
    first, with any settings there overriding ./HomerunConfig.toml.

    Only the baud rate is written back, through :meth:`store_baud_rate`,
    so that a rate acknowledged by the switcher survives a restart.

    Attributes:
        dev_port: Serial port or pyserial URL
        baud_rate, data_bits, stop_bits, parity, flow_control: Line settings
        command_delay_ms: Settle delay after ordinary commands
        reset_delay_ms: Settle delay after RSET/RSETD
        read_timeout_ms: Per-attempt reply timeout
        read_attempts: Reply read attempts before timing out
        retry_delay_ms: Pause between reply read attempts
    """

    # Class constants
    DEFAULT_CONFIG_FILE = 'HomerunConfig.toml'
    OVERRIDE_CONFIG_PATH = '/homerun/HomerunConfig.toml'

    DEVICE_SECTION = 'device'
    TIMING_SECTION = 'timing'

    def __init__(self):
        """Initialize configuration by loading TOML files."""
        self._lock = threading.RLock()
        self._dict = {}
        self._dict2 = {}

        self._config_file = Path.cwd() / self.DEFAULT_CONFIG_FILE
        self._override_file = Path(self.OVERRIDE_CONFIG_PATH)

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from TOML files.

        Raises:
            HomerunConfigError: If primary config file cannot be loaded.
        """
        try:
            self._dict = toml.load(self._config_file)
        except (FileNotFoundError, toml.TomlDecodeError) as e:
            raise HomerunConfigError(
                f"Failed to load primary config file {self._config_file}: {e}"
            ) from e

        try:
            if self._override_file.exists():
                self._dict2 = toml.load(self._override_file)
        except toml.TomlDecodeError as e:
            raise HomerunConfigError(
                f"Failed to load override config file {self._override_file}: {e}"
            ) from e

    def _get_toml(self, sect: str, item: str) -> Any:
        """Get configuration value, checking override file first.

        Returns:
            Configuration value or None if not found
        """
        with self._lock:
            for source in (self._dict2, self._dict):
                value = source.get(sect, {}).get(item)
                if value is not None:
                    return value
            return None

    def _get_int(self, sect: str, item: str, default: int) -> int:
        value = self._get_toml(sect, item)
        return default if value is None else value

    def store_baud_rate(self, baud_rate: int) -> None:
        """Record a new line speed and write it to the file it came from.

        The override file is written when it exists, so a docker install
        keeps its settings in one place.

        Raises:
            HomerunConfigError: If the file cannot be written.
        """
        with self._lock:
            use_override = bool(self._dict2) or self._override_file.exists()
            target = self._dict2 if use_override else self._dict
            target.setdefault(self.DEVICE_SECTION, {})['baud_rate'] = baud_rate
            path = self._override_file if use_override else self._config_file
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with path.open('w', encoding='utf-8') as f:
                    toml.dump(target, f)
            except OSError as e:
                raise HomerunConfigError(f"Failed to save configuration: {e}") from e

    # --------------
    # Device Section
    # --------------

    @property
    def dev_port(self) -> str:
        """Device port configuration."""
        return self._get_toml(self.DEVICE_SECTION, 'dev_port') or 'COM1'

    @property
    def baud_rate(self) -> int:
        """Line speed; the switcher ships at 2400."""
        return self._get_toml(self.DEVICE_SECTION, 'baud_rate') or 2400

    @property
    def data_bits(self) -> int:
        return self._get_toml(self.DEVICE_SECTION, 'data_bits') or 8

    @property
    def stop_bits(self) -> int:
        return self._get_toml(self.DEVICE_SECTION, 'stop_bits') or 1

    @property
    def parity(self) -> str:
        return self._get_toml(self.DEVICE_SECTION, 'parity') or Parity.NONE.value

    @property
    def flow_control(self) -> str:
        return self._get_toml(self.DEVICE_SECTION, 'flow_control') or FlowControl.NONE.value

    # --------------
    # Timing Section
    # --------------

    @property
    def command_delay_ms(self) -> int:
        return self._get_int(self.TIMING_SECTION, 'command_delay_ms', DEFAULT_COMMAND_DELAY_MS)

    @property
    def reset_delay_ms(self) -> int:
        return self._get_int(self.TIMING_SECTION, 'reset_delay_ms', DEFAULT_RESET_DELAY_MS)

    @property
    def read_timeout_ms(self) -> int:
        return self._get_int(self.TIMING_SECTION, 'read_timeout_ms', DEFAULT_READ_TIMEOUT_MS)

    @property
    def read_attempts(self) -> int:
        return self._get_int(self.TIMING_SECTION, 'read_attempts', DEFAULT_READ_ATTEMPTS)

    @property
    def retry_delay_ms(self) -> int:
        return self._get_int(self.TIMING_SECTION, 'retry_delay_ms', DEFAULT_RETRY_DELAY_MS)

    # -------
    # Helpers
    # -------

    def serial_config(self) -> SerialConfig:
        """Validated line settings snapshot.

        Raises:
            HomerunConfigError: If a device setting is out of range.
        """
        if self.baud_rate not in SUPPORTED_BAUD_RATES:
            raise HomerunConfigError(
                f"baud_rate must be one of {SUPPORTED_BAUD_RATES}, got {self.baud_rate}"
            )
        try:
            parity = Parity(str(self.parity).lower())
            flow_control = FlowControl(str(self.flow_control).lower())
        except ValueError as e:
            raise HomerunConfigError(f"Invalid device setting: {e}") from e
        return SerialConfig(
            baud_rate=self.baud_rate,
            data_bits=self.data_bits,
            stop_bits=self.stop_bits,
            parity=parity,
            flow_control=flow_control,
        )

    def timing(self) -> Dict[str, int]:
        """Keyword arguments for CommandDispatcher."""
        return {
            'command_delay_ms': self.command_delay_ms,
            'reset_delay_ms': self.reset_delay_ms,
            'read_timeout_ms': self.read_timeout_ms,
            'read_attempts': self.read_attempts,
            'retry_delay_ms': self.retry_delay_ms,
        }

    def __repr__(self) -> str:
        """Return string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"config_file='{self._config_file}', "
            f"override_file='{self._override_file}')"
        )
