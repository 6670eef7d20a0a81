# -*- coding: utf-8 -*-
# -----------------------------------------------------------------------------
# log.py - Shared logger for the switcher control server
# Adapted from Alpyca's log.py
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
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = 'homerun'
LOG_FILE = 'homerun.log'

logger: Optional[logging.Logger] = None     # Set by init_logging(), shared by the web layer


def init_logging(config, log_dir: Union[str, Path, None] = None) -> logging.Logger:
    """Create the application logger.

    Time stamps are UTC with milliseconds. The log file rotates at
    ``config.max_size_mb`` keeping ``config.num_keep_logs`` backups; a new
    file is started on each run. Console output only if
    ``config.log_to_stdout``.

    Args:
        config: Server configuration (:class:`config.Config`)
        log_dir: Directory for the log file; current directory if None

    Returns:
        The configured ``homerun`` logger
    """
    global logger

    formatter = logging.Formatter(
        '%(asctime)s.%(msecs)03d %(levelname)s [%(name)s] %(message)s',
        '%Y-%m-%dT%H:%M:%S'
    )
    formatter.converter = time.gmtime

    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(config.log_level)
    log.propagate = False
    for handler in log.handlers[:]:
        handler.close()
        log.removeHandler(handler)

    log_path = Path(log_dir) if log_dir else Path.cwd()
    log_path.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        log_path / LOG_FILE,
        mode='w',
        delay=True,
        maxBytes=config.max_size_mb * 1000000,
        backupCount=config.num_keep_logs
    )
    file_handler.setLevel(config.log_level)
    file_handler.setFormatter(formatter)
    if (log_path / LOG_FILE).exists():
        file_handler.doRollover()
    log.addHandler(file_handler)

    if config.log_to_stdout:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(config.log_level)
        console.setFormatter(formatter)
        log.addHandler(console)

    logger = log
    return log
