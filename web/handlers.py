"""
Request helpers and error mapping for the switcher HTTP interface.

Functions:
    current_switcher: Global switcher instance for resources
    read_body: JSON body with a sane empty default
    require_int: Pull an integer field out of a request body
    require_bool: Pull a boolean field out of a request body
    error_status_for: HTTP status for a driver error
    handle_switcher_error: falcon error handler for driver errors
"""

import logging
from typing import Any, Dict

import falcon
from falcon import Request, Response

import HomerunGlobal
import log
from homerun_exceptions import (
    DeviceRejected,
    HomerunError,
    InvalidArgument,
    NoResponse,
    NotConnected,
    ResponseTimeout,
    TransportError,
)

# Most specific first
_STATUS_MAP = (
    (InvalidArgument, falcon.HTTP_400),
    (NotConnected, falcon.HTTP_409),
    (DeviceRejected, falcon.HTTP_502),
    (NoResponse, falcon.HTTP_502),
    (ResponseTimeout, falcon.HTTP_504),
    (TransportError, falcon.HTTP_503),
)


def get_logger() -> logging.Logger:
    return log.logger or logging.getLogger(log.LOGGER_NAME)


def current_switcher():
    """Switcher used by resources that were not given one."""
    return HomerunGlobal.get_switcher(get_logger())


def read_body(req: Request) -> Dict[str, Any]:
    """
    Parse the JSON request body.

    Returns:
        dict: Parsed body, empty when the request had none

    Raises:
        falcon.HTTPBadRequest: Body is not a JSON object
    """
    body = req.get_media(default_when_empty={})
    if not isinstance(body, dict):
        raise falcon.HTTPBadRequest(title='Invalid body', description='Expected a JSON object')
    return body


def require_int(body: Dict[str, Any], key: str) -> int:
    value = body.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise falcon.HTTPBadRequest(
            title='Invalid parameter',
            description=f"'{key}' must be an integer"
        )
    return value


def require_bool(body: Dict[str, Any], key: str) -> bool:
    value = body.get(key)
    if not isinstance(value, bool):
        raise falcon.HTTPBadRequest(
            title='Invalid parameter',
            description=f"'{key}' must be true or false"
        )
    return value


def error_status_for(ex: HomerunError) -> str:
    for exc_type, status in _STATUS_MAP:
        if isinstance(ex, exc_type):
            return status
    return falcon.HTTP_500


def handle_switcher_error(req: Request, resp: Response, ex: HomerunError, params) -> None:
    """Turn a driver error into a JSON error response."""
    status = error_status_for(ex)
    get_logger().warning(f"{req.method} {req.path} failed: {type(ex).__name__}: {ex}")
    resp.status = status
    resp.media = {
        'error': type(ex).__name__,
        'message': str(ex),
        'command': ex.command,
    }
