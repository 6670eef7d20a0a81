"""
HTTP interface package for the HOMERUN switcher control server.

This package exposes the switcher driver as a small JSON API on top of the
Falcon WSGI framework. Every route lives under ``/api/v1/switcher``.

Modules:
    resources: Resource classes, one per route
    handlers: Request body helpers and driver error to HTTP status mapping

Example:
    >>> import falcon
    >>> from web import register_all_routes
    >>> app = falcon.App()
    >>> register_all_routes(app)
"""

from typing import Callable, Dict, List, Optional

__version__ = "1.0.0"

from .handlers import error_status_for, handle_switcher_error
from .resources import (
    ConnectionResource,
    InfoResource,
    InputResource,
    MemoryResource,
    OutputResource,
    PathsResource,
    PatternResource,
    ResetResource,
    RoutesResource,
    SalvoResource,
    VersionResource,
)

API_VERSION = 1
API_PREFIX = f'/api/v{API_VERSION}/switcher'

__all__: List[str] = [
    "ConnectionResource",
    "InfoResource",
    "InputResource",
    "MemoryResource",
    "OutputResource",
    "PathsResource",
    "PatternResource",
    "ResetResource",
    "RoutesResource",
    "SalvoResource",
    "VersionResource",
    "error_status_for",
    "handle_switcher_error",
    "get_all_resource_classes",
    "register_all_routes",
    "API_PREFIX",
    "__version__",
]


def get_all_resource_classes() -> Dict[str, type]:
    """
    Get all switcher resource classes as a mapping of route templates.

    Returns:
        dict: Mapping of route templates to resource classes (not instances)
    """
    return {
        f'{API_PREFIX}/connection': ConnectionResource,
        f'{API_PREFIX}/version': VersionResource,
        f'{API_PREFIX}/info': InfoResource,
        f'{API_PREFIX}/routes': RoutesResource,
        f'{API_PREFIX}/paths': PathsResource,
        f'{API_PREFIX}/salvo': SalvoResource,
        f'{API_PREFIX}/outputs/{{output:int}}': OutputResource,
        f'{API_PREFIX}/inputs/{{input:int}}': InputResource,
        f'{API_PREFIX}/memory/{{slot:int}}': MemoryResource,
        f'{API_PREFIX}/reset': ResetResource,
        f'{API_PREFIX}/patterns/{{name}}': PatternResource,
    }


def register_all_routes(app, switcher_provider: Optional[Callable] = None) -> None:
    """
    Register every switcher route with a Falcon app.

    Args:
        app: Falcon application instance
        switcher_provider: Zero-argument callable returning the switcher;
            the global instance from HomerunGlobal if None

    Raises:
        AttributeError: If app doesn't have add_route method
    """
    if not hasattr(app, 'add_route'):
        raise AttributeError("app must be a Falcon application with add_route method")

    for route, resource_cls in get_all_resource_classes().items():
        app.add_route(route, resource_cls(switcher_provider))
