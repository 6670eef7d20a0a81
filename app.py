# -*- coding: utf-8 -*-
# -----------------------------------------------------------------------------
# app.py - Application module for the HOMERUN switcher control server
#
# Adapted from the AlpycaDevice Alpaca skeleton/template device driver
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
#
import sys
import traceback
from typing import Callable, Optional

from falcon import App, HTTPInternalServerError, Request, Response
from waitress import serve as waitress_serve

import HomerunGlobal
import log
import web
from homerun_exceptions import HomerunError

server_cfg = None


def custom_excepthook(exc_type, exc_value, exc_traceback):
    """Last-chance exception handler

    Caution:
        Hook this as last-chance only after the config info
        has been initialized and the logger is set up!

    Assures that any unhandled exceptions are logged to our logfile.
    Used by :py:func:`~app.falcon_uncaught_exception_handler` to make sure
    exception info is logged instead of going to stdout. A config option
    provides for a full traceback to be logged.
    """
    # Do not print exception when user cancels the program
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = web.handlers.get_logger()
    logger.error(f'An uncaught {exc_type.__name__} exception occurred:')
    logger.error(exc_value)

    if server_cfg is not None and server_cfg.verbose_driver_exceptions and exc_traceback:
        for line in traceback.format_tb(exc_traceback):
            logger.error(repr(line))


def falcon_uncaught_exception_handler(req: Request, resp: Response, ex: BaseException, params):
    """Handle Uncaught Exceptions while in a Falcon Responder

        This catches unhandled exceptions within the Falcon responder,
        logging the info to our log file instead of it being lost to
        stdout. Then it responds with a 500 Internal Server Error.

    """
    exc = sys.exc_info()
    custom_excepthook(exc[0], exc[1], exc[2])
    raise HTTPInternalServerError(
        title='Internal Server Error',
        description='Switcher endpoint responder failed. See logfile.'
    )


def create_app(switcher_provider: Optional[Callable] = None) -> App:
    """Build the Falcon WSGI app with all switcher routes.

    Args:
        switcher_provider: Zero-argument callable returning the switcher;
            the global instance from HomerunGlobal if None
    """
    falc_app = App()
    web.register_all_routes(falc_app, switcher_provider)
    # Falcon picks the most specific handler, so driver errors never reach
    # the catch-all
    falc_app.add_error_handler(Exception, falcon_uncaught_exception_handler)
    falc_app.add_error_handler(HomerunError, web.handle_switcher_error)
    return falc_app


# ===========
# APP STARTUP
# ===========
def main():
    """Application startup"""
    global server_cfg

    server_cfg = HomerunGlobal.get_serverconfig()
    logger = log.init_logging(server_cfg)

    # -----------------------------
    # Last-Chance Exception Handler
    # -----------------------------
    sys.excepthook = custom_excepthook

    switcher = HomerunGlobal.get_switcher(logger)
    try:
        switcher.connect()
    except HomerunError as ex:
        # The API can retry via PUT /connection
        logger.error(f'==STARTUP== Switcher not connected: {ex}')

    falc_app = create_app()

    host = server_cfg.ip_address if server_cfg.ip_address else '0.0.0.0'
    port = server_cfg.port
    threads = server_cfg.threads
    logger.info(f'==STARTUP== Serving switcher API on {host}:{port} with {threads} worker threads. '
                'Time stamps are UTC.')

    try:
        waitress_serve(falc_app, host=host, port=port, threads=threads)
    finally:
        logger.info('==SHUTDOWN== Releasing switcher')
        HomerunGlobal.reset_switcher()


# ========================
if __name__ == '__main__':
    main()
# ========================
