"""
HOMERUN Driver Exception Hierarchy

Errors raised by the matrix switcher driver. Every error carries the
offending command text (``command``) so failures can be traced back to
what was on the wire; it is ``None`` when no command was involved.
"""

from typing import Optional


class HomerunError(Exception):
    """Base exception for all HOMERUN driver errors."""

    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__(message)
        self.command = command


class NotConnected(HomerunError):
    """Raised when an operation needs an open session and there is none."""
    pass


class TransportError(HomerunError):
    """Raised when the byte transport reports a failure."""
    pass


class TransportOpenFailed(TransportError):
    """Raised when the transport cannot be opened.

    The session stays disconnected. Possible causes:
    - Port does not exist or is in use by another application
    - Insufficient permissions on the device node
    - Unsupported line settings
    """
    pass


class TransportIOFailed(TransportError):
    """Raised when a write or read on an open transport fails."""
    pass


class InvalidArgument(HomerunError, ValueError):
    """Raised before dispatch when an argument is outside device limits."""
    pass


class InvalidBaudRate(InvalidArgument):
    """Raised when a baud rate other than 2400, 4800 or 9600 is requested."""
    pass


class ResponseTimeout(HomerunError):
    """Raised when no complete reply arrived within the read attempts.

    ``partial`` holds whatever text was accumulated, for diagnostics.
    """

    def __init__(self, message: str, command: Optional[str] = None, partial: str = ''):
        super().__init__(message, command)
        self.partial = partial


class NoResponse(HomerunError):
    """Raised when an acknowledged command got an empty reply."""
    pass


class DeviceRejected(HomerunError):
    """Raised when the switcher answers ``[ERR]``."""
    pass


class UnexpectedResponse(HomerunError):
    """Non-fatal: an acknowledged command got text other than OK/ERR.

    Returned by the validator and logged as a warning, never raised. The
    switcher is presumed to have executed the command.
    """

    def __init__(self, message: str, command: Optional[str] = None, response: str = ''):
        super().__init__(message, command)
        self.response = response
