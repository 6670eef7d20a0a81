# File: homerun_types.py
"""Type definitions shared by the HOMERUN matrix switcher driver."""

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Tuple


SUPPORTED_BAUD_RATES: Tuple[int, ...] = (2400, 4800, 9600)


class SessionState(IntEnum):
    """Driver session states."""
    DISCONNECTED = 0
    CONNECTED = 1


class Parity(str, Enum):
    NONE = 'none'
    EVEN = 'even'
    ODD = 'odd'


class FlowControl(str, Enum):
    NONE = 'none'
    HARDWARE = 'hardware'


class CommandCategory(IntEnum):
    """Feedback classes of switcher commands."""
    CONTROL = 0      # Cross-point changes, acknowledged
    SYSTEM = 1       # Memory, reset, salvo, unit, VIS; acknowledged
    PROGRAMMING = 2  # Stored in non-volatile memory; acknowledged
    QUERY = 3        # Returns data directly, never acknowledged
    RAW = 4          # Free-form text, classified by content


class CommandKind(IntEnum):
    """Tag of every command variant the encoder can produce."""
    CONNECT = 0
    SET_PATH = 1
    EXECUTE_SWITCH = 2
    DISCONNECT_OUTPUT = 3
    CONNECT_UNIT = 4
    STATUS_ALL = 5
    STATUS_INPUT = 6
    STATUS_OUTPUT = 7
    SAVE_MEMORY = 8
    RECALL_MEMORY = 9
    RESET = 10
    FACTORY_RESET = 11
    VERSION = 12
    SET_BAUD = 13
    SET_VIS = 14
    SET_UNIT_ID = 15
    SET_EXCLUSIVE_UNIT = 16
    SET_MODULE_ID = 17
    SET_MATRIX_SIZE = 18
    SET_OFFSET = 19
    RAW = 20


@dataclass(frozen=True)
class SerialConfig:
    """Immutable serial line settings. Factory default is 2400 8N1."""
    baud_rate: int = 2400
    data_bits: int = 8
    stop_bits: int = 1
    parity: Parity = Parity.NONE
    flow_control: FlowControl = FlowControl.NONE

    def with_baud_rate(self, baud_rate: int) -> 'SerialConfig':
        return replace(self, baud_rate=baud_rate)

    def to_dict(self) -> dict:
        return {
            'baud_rate': self.baud_rate,
            'data_bits': self.data_bits,
            'stop_bits': self.stop_bits,
            'parity': self.parity.value,
            'flow_control': self.flow_control.value,
        }


@dataclass(frozen=True)
class ConnectionStatus:
    """One asserted cross-point."""
    input: int
    output: int


@dataclass(frozen=True)
class MatrixSize:
    inputs: int = 0
    outputs: int = 0


@dataclass(frozen=True)
class Offset:
    input: int = 0
    output: int = 0


@dataclass
class SwitcherInfo:
    """Switcher snapshot assembled from separate queries.

    Not atomically consistent: the version and status reads are two
    independent round trips.
    """
    version: str = ''
    unit_id: int = 0
    baud_rate: int = 2400
    matrix_size: MatrixSize = field(default_factory=MatrixSize)
    offset: Offset = field(default_factory=Offset)
