# File: homerun_protocol.py
"""
Reply framing, validation and parsing for the HOMERUN matrix switcher.

The switcher answers acknowledged commands with ``[OK]`` or ``[ERR]``,
the version query with ``[<version>]``, and status queries with runs of
2-digit decimal fields (one per output or per connected output).
"""

import re
from typing import List, Optional

from homerun_commands import Command, CommandLike, as_command
from homerun_exceptions import DeviceRejected, NoResponse, UnexpectedResponse
from homerun_types import CommandCategory, ConnectionStatus


ACK_OK = '[OK]'
ACK_ERR = '[ERR]'
FIELD_WIDTH = 2

_HEX_TABLE = re.compile(r'[0-9A-F]+')


def is_complete_response(buffer: str) -> bool:
    """
    Test whether accumulated reply text forms a complete frame.

    Any non-empty unbracketed, non-hex text is accepted as complete on the
    assumption that the switcher does not fragment such replies. That is a
    heuristic, not a framing guarantee; multi-chunk text replies can be cut
    short by it.

    Args:
        buffer: Decoded text accumulated so far

    Returns:
        True once the buffer is worth handing to the validator/parser
    """
    trimmed = buffer.strip()

    if trimmed in (ACK_OK, ACK_ERR):
        return True

    # Version and other bracketed data replies
    if trimmed.startswith('[') and trimmed.endswith(']') and len(trimmed) > 2:
        return True

    # Status tables
    if len(trimmed) >= 2 and _HEX_TABLE.fullmatch(trimmed):
        return True

    return len(trimmed) > 0


def _returns_data(command: Command) -> bool:
    if command.category == CommandCategory.QUERY:
        return True
    return command.category == CommandCategory.RAW and (
        'VERN' in command.encode() or 'XXX' in command.encode()
    )


def validate_feedback_response(response: str, command: CommandLike) -> Optional[UnexpectedResponse]:
    """
    Validate the reply to a command sent with the acknowledgement flag.

    Args:
        response: Reply text
        command: The command that was sent

    Returns:
        None when the reply is acceptable, or an :class:`UnexpectedResponse`
        describing non-fatal unexpected text (the caller logs it)

    Raises:
        DeviceRejected: The switcher answered ``[ERR]``
        NoResponse: The reply was empty
    """
    command = as_command(command)
    wire = command.encode()
    trimmed = response.strip()

    if trimmed == ACK_OK:
        return None
    if trimmed == ACK_ERR:
        raise DeviceRejected(f"Switcher returned error for command: {wire}", wire)
    if not trimmed:
        raise NoResponse(f"No response received for command: {wire}", wire)

    # Version and status replies carry data instead of OK/ERR
    if _returns_data(command):
        return None

    return UnexpectedResponse(
        f"Unexpected response for command {wire}: {trimmed}", wire, trimmed
    )


def strip_brackets(response: str) -> str:
    return response.replace('[', '').replace(']', '')


def _fields(response: str) -> List[int]:
    """Split a reply into 2-digit decimal fields; unparsable fields read as 0."""
    clean = strip_brackets(response.strip())
    values = []
    for i in range(0, len(clean), FIELD_WIDTH):
        try:
            values.append(int(clean[i:i + FIELD_WIDTH], 10))
        except ValueError:
            values.append(0)
    return values


def parse_connection_status(response: str) -> List[ConnectionStatus]:
    """
    Parse a status-all reply into asserted cross-points.

    Field ``i`` (0-based) is the input driving output ``i + 1``; zero means
    nothing is connected to that output and is left out.

    Example:
        >>> parse_connection_status('010000030000')
        [ConnectionStatus(input=1, output=1), ConnectionStatus(input=3, output=4)]
    """
    return [
        ConnectionStatus(input=value, output=index + 1)
        for index, value in enumerate(_fields(response))
        if value > 0
    ]


def parse_output_list(response: str) -> List[int]:
    """Parse a status-by-input reply into the outputs that input drives."""
    return [value for value in _fields(response) if value > 0]


def parse_output_connection(response: str) -> int:
    """Parse a status-by-output reply; 0 means no input is connected."""
    match = re.match(r'\d+', strip_brackets(response.strip()))
    return int(match.group(0)) if match else 0


def parse_version(response: str) -> str:
    return strip_brackets(response)


def count_outputs(response: str) -> int:
    """Number of 2-digit fields in a status-all reply."""
    return len(_fields(response))
