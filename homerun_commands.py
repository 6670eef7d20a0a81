# File: homerun_commands.py
"""
Command encoding and feedback policy for the HOMERUN matrix switcher.

Every command the driver can send is a frozen dataclass variant tagged with
a :class:`CommandKind` and a :class:`CommandCategory`. Wire text is produced
only by :meth:`Command.encode`, and the acknowledgement policy is decided on
the category tag, never by searching the rendered text.

Example:
    >>> Connect(3, 7).encode()
    '[I03O07]'
    >>> plan_feedback(Connect(3, 7)).wire
    '[I03O07F]'
    >>> decode_command('[SAV02]')
    SaveMemory(slot=2)
"""

import re
from dataclasses import dataclass
from typing import Callable, ClassVar, Dict, List, Tuple, Union

from homerun_exceptions import InvalidBaudRate
from homerun_types import CommandCategory, CommandKind


FEEDBACK_FLAG = 'F'

# Baud rate -> BAUD command code
BAUD_CODES: Dict[int, int] = {2400: 4, 4800: 5, 9600: 6}
BAUD_RATES_BY_CODE: Dict[int, int] = {code: rate for rate, code in BAUD_CODES.items()}


class Command:
    """Base of all command variants."""
    kind: ClassVar[CommandKind]
    category: ClassVar[CommandCategory]

    def body(self) -> str:
        """Command text between the brackets."""
        raise NotImplementedError

    def encode(self) -> str:
        return f'[{self.body()}]'

    def __str__(self) -> str:
        return self.encode()


# -- Control ------------------------------------------------------------------

@dataclass(frozen=True)
class Connect(Command):
    input: int
    output: int
    kind: ClassVar[CommandKind] = CommandKind.CONNECT
    category: ClassVar[CommandCategory] = CommandCategory.CONTROL

    def body(self) -> str:
        return f'I{self.input:02d}O{self.output:02d}'


@dataclass(frozen=True)
class SetPath(Command):
    """Stage a path for the next salvo switch without switching."""
    input: int
    output: int
    kind: ClassVar[CommandKind] = CommandKind.SET_PATH
    category: ClassVar[CommandCategory] = CommandCategory.CONTROL

    def body(self) -> str:
        return f'I{self.input:02d}O{self.output:02d}P'


@dataclass(frozen=True)
class DisconnectOutput(Command):
    output: int
    kind: ClassVar[CommandKind] = CommandKind.DISCONNECT_OUTPUT
    category: ClassVar[CommandCategory] = CommandCategory.CONTROL

    def body(self) -> str:
        return f'I00O{self.output:02d}'


@dataclass(frozen=True)
class ConnectUnit(Command):
    """Connect on one specific unit of a multi-unit system."""
    input: int
    output: int
    unit_id: int
    kind: ClassVar[CommandKind] = CommandKind.CONNECT_UNIT
    category: ClassVar[CommandCategory] = CommandCategory.CONTROL

    def body(self) -> str:
        return f'I{self.input:02d}O{self.output:02d}U{self.unit_id}'


# -- Status queries -----------------------------------------------------------

@dataclass(frozen=True)
class StatusAll(Command):
    kind: ClassVar[CommandKind] = CommandKind.STATUS_ALL
    category: ClassVar[CommandCategory] = CommandCategory.QUERY

    def body(self) -> str:
        return 'IXXOXXX'


@dataclass(frozen=True)
class StatusInput(Command):
    input: int
    kind: ClassVar[CommandKind] = CommandKind.STATUS_INPUT
    category: ClassVar[CommandCategory] = CommandCategory.QUERY

    def body(self) -> str:
        return f'I{self.input:02d}OXXX'


@dataclass(frozen=True)
class StatusOutput(Command):
    output: int
    kind: ClassVar[CommandKind] = CommandKind.STATUS_OUTPUT
    category: ClassVar[CommandCategory] = CommandCategory.QUERY

    def body(self) -> str:
        return f'IXXO{self.output:02d}X'


@dataclass(frozen=True)
class Version(Command):
    kind: ClassVar[CommandKind] = CommandKind.VERSION
    category: ClassVar[CommandCategory] = CommandCategory.QUERY

    def body(self) -> str:
        return 'VERN'


# -- System -------------------------------------------------------------------

@dataclass(frozen=True)
class ExecuteSwitch(Command):
    kind: ClassVar[CommandKind] = CommandKind.EXECUTE_SWITCH
    category: ClassVar[CommandCategory] = CommandCategory.SYSTEM

    def body(self) -> str:
        return 'SW'


@dataclass(frozen=True)
class SaveMemory(Command):
    slot: int
    kind: ClassVar[CommandKind] = CommandKind.SAVE_MEMORY
    category: ClassVar[CommandCategory] = CommandCategory.SYSTEM

    def body(self) -> str:
        return f'SAV{self.slot:02d}'


@dataclass(frozen=True)
class RecallMemory(Command):
    slot: int
    kind: ClassVar[CommandKind] = CommandKind.RECALL_MEMORY
    category: ClassVar[CommandCategory] = CommandCategory.SYSTEM

    def body(self) -> str:
        return f'RCL{self.slot:02d}'


@dataclass(frozen=True)
class Reset(Command):
    """Reset the switcher; it reloads memory 1."""
    kind: ClassVar[CommandKind] = CommandKind.RESET
    category: ClassVar[CommandCategory] = CommandCategory.SYSTEM

    def body(self) -> str:
        return 'RSET'


@dataclass(frozen=True)
class FactoryReset(Command):
    kind: ClassVar[CommandKind] = CommandKind.FACTORY_RESET
    category: ClassVar[CommandCategory] = CommandCategory.SYSTEM

    def body(self) -> str:
        return 'RSETD'


@dataclass(frozen=True)
class SetVerticalInterval(Command):
    enabled: bool
    kind: ClassVar[CommandKind] = CommandKind.SET_VIS
    category: ClassVar[CommandCategory] = CommandCategory.SYSTEM

    def body(self) -> str:
        return f'VIS{1 if self.enabled else 0}'


@dataclass(frozen=True)
class SetUnitId(Command):
    unit_id: int
    kind: ClassVar[CommandKind] = CommandKind.SET_UNIT_ID
    category: ClassVar[CommandCategory] = CommandCategory.SYSTEM

    def body(self) -> str:
        return f'UID{self.unit_id}'


@dataclass(frozen=True)
class SetExclusiveUnit(Command):
    unit_id: int
    kind: ClassVar[CommandKind] = CommandKind.SET_EXCLUSIVE_UNIT
    category: ClassVar[CommandCategory] = CommandCategory.SYSTEM

    def body(self) -> str:
        return f'UID{self.unit_id}E'


# -- Programming (non-volatile) -----------------------------------------------

@dataclass(frozen=True)
class SetBaudRate(Command):
    baud_rate: int
    kind: ClassVar[CommandKind] = CommandKind.SET_BAUD
    category: ClassVar[CommandCategory] = CommandCategory.PROGRAMMING

    @property
    def code(self) -> int:
        try:
            return BAUD_CODES[self.baud_rate]
        except KeyError:
            raise InvalidBaudRate(
                f"Invalid baud rate {self.baud_rate}. Must be 2400, 4800, or 9600"
            ) from None

    def body(self) -> str:
        return f'BAUD{self.code}'


@dataclass(frozen=True)
class SetModuleId(Command):
    module_id: int
    kind: ClassVar[CommandKind] = CommandKind.SET_MODULE_ID
    category: ClassVar[CommandCategory] = CommandCategory.PROGRAMMING

    def body(self) -> str:
        return f'SETID{self.module_id}'


@dataclass(frozen=True)
class SetMatrixSize(Command):
    inputs: int
    outputs: int
    kind: ClassVar[CommandKind] = CommandKind.SET_MATRIX_SIZE
    category: ClassVar[CommandCategory] = CommandCategory.PROGRAMMING

    def body(self) -> str:
        return f'I{self.inputs:02d}O{self.outputs:02d}S'


@dataclass(frozen=True)
class SetOffset(Command):
    input: int
    output: int
    kind: ClassVar[CommandKind] = CommandKind.SET_OFFSET
    category: ClassVar[CommandCategory] = CommandCategory.PROGRAMMING

    def body(self) -> str:
        return f'I{self.input:02d}O{self.output:02d}A'


# -- Free-form ----------------------------------------------------------------

@dataclass(frozen=True)
class RawCommand(Command):
    """Arbitrary command text that matches none of the typed wire forms."""
    text: str
    kind: ClassVar[CommandKind] = CommandKind.RAW
    category: ClassVar[CommandCategory] = CommandCategory.RAW

    def body(self) -> str:
        text = self.text.strip()
        if text.startswith('['):
            text = text[1:]
        if text.endswith(']'):
            text = text[:-1]
        return text

    def encode(self) -> str:
        return self.text.strip()


CommandLike = Union[Command, str]


# -----------------------------------------------------------------------------
# Decoding wire text back to variants
# -----------------------------------------------------------------------------

def _connect_or_disconnect(m: re.Match) -> Command:
    input_num, output_num = int(m.group(1)), int(m.group(2))
    if input_num == 0:
        return DisconnectOutput(output_num)
    return Connect(input_num, output_num)


_DECODERS: List[Tuple[re.Pattern, Callable[[re.Match], Command]]] = [
    (re.compile(r'IXXOXXX'), lambda m: StatusAll()),
    (re.compile(r'I(\d{2})OXXX'), lambda m: StatusInput(int(m.group(1)))),
    (re.compile(r'IXXO(\d{2})X'), lambda m: StatusOutput(int(m.group(1)))),
    (re.compile(r'I(\d{2})O(\d{2})'), _connect_or_disconnect),
    (re.compile(r'I(\d{2})O(\d{2})P'), lambda m: SetPath(int(m.group(1)), int(m.group(2)))),
    (re.compile(r'I(\d{2})O(\d{2})U(\d)'),
     lambda m: ConnectUnit(int(m.group(1)), int(m.group(2)), int(m.group(3)))),
    (re.compile(r'I(\d{2})O(\d{2})S'), lambda m: SetMatrixSize(int(m.group(1)), int(m.group(2)))),
    (re.compile(r'I(\d{2})O(\d{2})A'), lambda m: SetOffset(int(m.group(1)), int(m.group(2)))),
    (re.compile(r'SW'), lambda m: ExecuteSwitch()),
    (re.compile(r'SAV(\d{2})'), lambda m: SaveMemory(int(m.group(1)))),
    (re.compile(r'RCL(\d{2})'), lambda m: RecallMemory(int(m.group(1)))),
    (re.compile(r'RSET'), lambda m: Reset()),
    (re.compile(r'RSETD'), lambda m: FactoryReset()),
    (re.compile(r'VERN'), lambda m: Version()),
    (re.compile(r'BAUD([456])'), lambda m: SetBaudRate(BAUD_RATES_BY_CODE[int(m.group(1))])),
    (re.compile(r'VIS([01])'), lambda m: SetVerticalInterval(m.group(1) == '1')),
    (re.compile(r'UID(\d)'), lambda m: SetUnitId(int(m.group(1)))),
    (re.compile(r'UID(\d)E'), lambda m: SetExclusiveUnit(int(m.group(1)))),
    (re.compile(r'SETID(\d)'), lambda m: SetModuleId(int(m.group(1)))),
]


def decode_command(text: str) -> Command:
    """
    Decode bracketed wire text into a typed command.

    Text that is not bracketed or matches no known form (including forms
    already carrying the ``F`` flag) becomes a :class:`RawCommand`.

    Args:
        text: Wire text such as ``'[I03O07]'``

    Returns:
        The matching command variant
    """
    stripped = text.strip()
    if len(stripped) >= 2 and stripped[0] == '[' and stripped[-1] == ']':
        body = stripped[1:-1]
        for pattern, build in _DECODERS:
            m = pattern.fullmatch(body)
            if m:
                return build(m)
    return RawCommand(text)


def as_command(command: CommandLike) -> Command:
    if isinstance(command, Command):
        return command
    if not isinstance(command, str):
        raise TypeError(f"Command must be Command or str, got {type(command)}")
    return decode_command(command)


# -----------------------------------------------------------------------------
# Feedback policy
# -----------------------------------------------------------------------------

_RAW_NO_FEEDBACK = ('VERN', 'XXX', 'IXXO', 'OXXX')
_RAW_PROGRAMMING = ('SETID', 'BAUD', 'CODE', 'S]', 'A]', 'L]')
_RAW_SYSTEM = ('RSET', 'SAV', 'RCL', 'SW', 'UID', 'VIS')


def _raw_wants_feedback(command: RawCommand) -> bool:
    # Free-form text has no tag, so fall back to content rules
    body = command.body()
    text = f'[{body}]'
    if body.endswith(FEEDBACK_FLAG):
        return False
    if any(token in text for token in _RAW_NO_FEEDBACK):
        return False
    programming = any(token in text for token in _RAW_PROGRAMMING)
    control = 'I' in body and 'O' in body
    system = any(token in text for token in _RAW_SYSTEM)
    return programming or control or system


def should_add_suffix(command: CommandLike) -> bool:
    """
    Decide whether the acknowledgement flag is appended to a command.

    Queries never get it; control, system and programming commands always
    do. Free-form text is classified by its content.

    Args:
        command: Command variant or wire text

    Returns:
        True if ``F`` must be inserted before the closing bracket
    """
    command = as_command(command)
    if command.category == CommandCategory.QUERY:
        return False
    if command.category == CommandCategory.RAW:
        return _raw_wants_feedback(command)
    return True


def add_feedback_suffix(wire: str) -> str:
    """Insert the ``F`` flag immediately before the closing bracket."""
    if wire.endswith(']'):
        return wire[:-1] + FEEDBACK_FLAG + ']'
    return wire + FEEDBACK_FLAG


@dataclass(frozen=True)
class FeedbackPlan:
    """How one command goes on the wire."""
    command: Command
    wire: str
    suffixed: bool
    expect_response: bool


def plan_feedback(command: CommandLike, force_expect_response: bool = False) -> FeedbackPlan:
    """Resolve the final wire text and whether a reply must be read."""
    command = as_command(command)
    suffixed = should_add_suffix(command)
    wire = command.encode()
    if suffixed:
        wire = add_feedback_suffix(wire)
    return FeedbackPlan(
        command=command,
        wire=wire,
        suffixed=suffixed,
        expect_response=suffixed or force_expect_response,
    )


def is_reset(command: Command) -> bool:
    """True for commands that need the long post-reset settle window."""
    if command.kind in (CommandKind.RESET, CommandKind.FACTORY_RESET):
        return True
    return command.kind == CommandKind.RAW and 'RSET' in command.encode()
