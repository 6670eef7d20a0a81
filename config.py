# -*- coding: utf-8 -*-
# -----------------------------------------------------------------------------
# config.py - Read-only server settings for the HOMERUN control server
# Adapted from Alpyca's config.py
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

import logging
import sys
from pathlib import Path
from typing import Any, Dict

import toml


class ConfigError(Exception):
    """Custom exception for configuration errors"""
    pass


def _load_toml(path: Path) -> Dict[str, Any]:
    try:
        return toml.load(path)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigError(f"Failed to load config file {path}: {e}") from e


class Config:
    """Network, exception reporting and logging settings for the server.

    Reads ./config.toml (next to the executable when frozen). For docker
    installs, sections in /homerun/config.toml are laid over it key by key.
    Values are read once at startup; edit the file and restart to change them.
    """

    DEFAULT_CONFIG_FILE = 'config.toml'
    OVERRIDE_CONFIG_PATH = '/homerun/config.toml'

    def get_config_dir(self) -> Path:
        if getattr(sys, 'frozen', False):
            return Path(sys.executable).parent
        return Path(sys.path[0])

    def __init__(self):
        self._config_file = self.get_config_dir() / self.DEFAULT_CONFIG_FILE
        self._override_file = Path(self.OVERRIDE_CONFIG_PATH)

        self._settings = _load_toml(self._config_file)
        if self._override_file.exists():
            for section, values in _load_toml(self._override_file).items():
                if isinstance(values, dict):
                    self._settings.setdefault(section, {}).update(values)
                else:
                    self._settings[section] = values

    def _get(self, section: str, item: str, default: Any = None) -> Any:
        value = self._settings.get(section, {}).get(item)
        return default if value in (None, '') else value

    # Network
    @property
    def ip_address(self) -> str:
        """Bind address; empty binds all interfaces."""
        return self._get('network', 'ip_address', '')

    @property
    def port(self) -> int:
        return self._get('network', 'port', 5555)

    @property
    def threads(self) -> int:
        """waitress worker threads."""
        return self._get('network', 'threads', 4)

    # Server
    @property
    def verbose_driver_exceptions(self) -> bool:
        """Log full tracebacks for uncaught exceptions."""
        return bool(self._get('server', 'verbose_driver_exceptions', False))

    # Logging
    @property
    def log_level(self) -> int:
        return logging.getLevelName(str(self._get('logging', 'log_level', 'INFO')).upper())

    @property
    def log_to_stdout(self) -> bool:
        return bool(self._get('logging', 'log_to_stdout', False))

    @property
    def max_size_mb(self) -> int:
        return self._get('logging', 'max_size_mb', 5)

    @property
    def num_keep_logs(self) -> int:
        return self._get('logging', 'num_keep_logs', 10)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"config_file='{self._config_file}', "
            f"override_file='{self._override_file}')"
        )
