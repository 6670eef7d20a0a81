# File: HomerunDevice.py
"""
Altinex HOMERUN series matrix switcher driver.

Typed control, status, memory, system and programming operations built on
:class:`homerun_serial.CommandDispatcher`. Every numeric argument is checked
against the device limits before anything is written to the line.

Example:
    >>> switcher = HomerunMatrixSwitcher(SerialTransport('/dev/ttyUSB0'), logger)
    >>> switcher.connect(SerialConfig(baud_rate=9600))
    >>> switcher.connect_input_to_output(1, 1)
    >>> switcher.set_path(2, 3)
    >>> switcher.set_path(4, 5)
    >>> switcher.execute_switch()
    >>> switcher.get_all_connections()
    [ConnectionStatus(input=1, output=1), ConnectionStatus(input=2, output=3), ...]
    >>> switcher.disconnect()
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from homerun_commands import (
    Connect,
    ConnectUnit,
    DisconnectOutput,
    ExecuteSwitch,
    FactoryReset,
    RecallMemory,
    Reset,
    SaveMemory,
    SetBaudRate,
    SetExclusiveUnit,
    SetMatrixSize,
    SetModuleId,
    SetOffset,
    SetPath,
    SetUnitId,
    SetVerticalInterval,
    StatusAll,
    StatusInput,
    StatusOutput,
    Version,
)
from homerun_exceptions import HomerunError, InvalidArgument, InvalidBaudRate
from homerun_protocol import (
    count_outputs,
    parse_connection_status,
    parse_output_connection,
    parse_output_list,
    parse_version,
)
from homerun_serial import CommandDispatcher, SerialTransport, Transport
from homerun_types import (
    SUPPORTED_BAUD_RATES,
    ConnectionStatus,
    MatrixSize,
    Offset,
    SerialConfig,
    SwitcherInfo,
)


class HomerunMatrixSwitcher:
    """HOMERUN matrix switcher over RS-232."""

    # Device limits
    MIN_PORT = 1
    MAX_PORT = 16
    MIN_UNIT_ID = 0
    MAX_UNIT_ID = 9
    MIN_EXCLUSIVE_UNIT_ID = 2
    MIN_MEMORY_SLOT = 0
    MAX_MEMORY_SLOT = 16
    MAX_PROGRAMMABLE = 96

    def __init__(
        self,
        transport: Transport,
        logger: Optional[logging.Logger] = None,
        config: Optional[SerialConfig] = None,
        on_baud_rate_change: Optional[Callable[[int], None]] = None,
        **dispatcher_options: int,
    ) -> None:
        """
        Args:
            transport: Byte transport to the switcher
            logger: Logger for driver events; module logger if None
            config: Line settings for :meth:`connect`; 2400 8N1 if None
            on_baud_rate_change: Called with the new rate after the switcher
                acknowledged :meth:`set_baud_rate`
            **dispatcher_options: Timing overrides passed to
                :class:`CommandDispatcher` (command_delay_ms, reset_delay_ms,
                read_timeout_ms, read_attempts, retry_delay_ms)
        """
        self._logger = logger or logging.getLogger(__name__)
        self._line_config = config or SerialConfig()
        self._on_baud_rate_change = on_baud_rate_change
        self._dispatcher = CommandDispatcher(transport, self._logger, **dispatcher_options)

        # Last values programmed through this driver
        self._unit_id = 0
        self._matrix_size: Optional[MatrixSize] = None
        self._offset = Offset()

    @classmethod
    def from_config(cls, device_config, logger: Optional[logging.Logger] = None) -> 'HomerunMatrixSwitcher':
        """Build a switcher on a serial port from a HomerunConfig instance.

        An acknowledged baud rate change is written back to ``device_config``.
        """
        transport = SerialTransport(device_config.dev_port, logger)
        return cls(transport, logger, device_config.serial_config(),
                   on_baud_rate_change=device_config.store_baud_rate, **device_config.timing())

    def __enter__(self) -> 'HomerunMatrixSwitcher':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    # -----------------
    # Session lifecycle
    # -----------------

    def connect(self, config: Optional[SerialConfig] = None) -> None:
        """
        Open the serial session.

        Args:
            config: Line settings. They replace the stored settings and are
                reused by later calls without an argument.

        Raises:
            TransportOpenFailed: The port could not be opened. The session
                stays disconnected.
        """
        if config is not None:
            self._line_config = config
        self._dispatcher.open(self._line_config)
        self._logger.info("Connected to HOMERUN Matrix Switcher")

    def disconnect(self) -> None:
        """Close the session. Safe to call at any time; never raises."""
        was_connected = self._dispatcher.is_connected
        self._dispatcher.close()
        if was_connected:
            self._logger.info("Disconnected from HOMERUN Matrix Switcher")

    @property
    def is_connected(self) -> bool:
        return self._dispatcher.is_connected

    @property
    def configuration(self) -> SerialConfig:
        return self._dispatcher.config

    @property
    def dispatcher(self) -> CommandDispatcher:
        return self._dispatcher

    # ----------------
    # Control commands
    # ----------------

    def connect_input_to_output(self, input: int, output: int) -> None:
        self._validate_input_output(input, output)
        self._dispatcher.dispatch(Connect(input, output))

    def set_path(self, input: int, output: int) -> None:
        """Stage a path without switching; commit with :meth:`execute_switch`."""
        self._validate_input_output(input, output)
        self._dispatcher.dispatch(SetPath(input, output))

    def execute_switch(self) -> None:
        """Commit all paths staged with :meth:`set_path` at once."""
        self._dispatcher.dispatch(ExecuteSwitch())

    def disconnect_output(self, output: int) -> None:
        self._validate_output(output)
        self._dispatcher.dispatch(DisconnectOutput(output))

    def connect_with_unit_id(self, input: int, output: int, unit_id: int) -> None:
        """Connect input to output on one unit of a multi-unit system."""
        self._validate_input_output(input, output)
        self._validate_unit_id(unit_id)
        self._dispatcher.dispatch(ConnectUnit(input, output, unit_id))

    def set_unit_id(self, unit_id: int) -> None:
        self._validate_unit_id(unit_id)
        self._dispatcher.dispatch(SetUnitId(unit_id))
        self._unit_id = unit_id

    def set_exclusive_unit(self, unit_id: int) -> None:
        """Address one unit exclusively; units 0 and 1 cannot be exclusive."""
        self._validate_range('Exclusive unit ID', unit_id, self.MIN_EXCLUSIVE_UNIT_ID, self.MAX_UNIT_ID)
        self._dispatcher.dispatch(SetExclusiveUnit(unit_id))
        self._unit_id = unit_id

    # ---------------
    # Status queries
    # ---------------

    def get_all_connections(self) -> List[ConnectionStatus]:
        response = self._dispatcher.dispatch(StatusAll(), force_expect_response=True)
        return parse_connection_status(response)

    def get_input_connections(self, input: int) -> List[int]:
        """Outputs currently driven by ``input``."""
        self._validate_input(input)
        response = self._dispatcher.dispatch(StatusInput(input), force_expect_response=True)
        return parse_output_list(response)

    def get_output_connection(self, output: int) -> int:
        """Input currently driving ``output``; 0 when disconnected."""
        self._validate_output(output)
        response = self._dispatcher.dispatch(StatusOutput(output), force_expect_response=True)
        return parse_output_connection(response)

    # ---------------
    # Memory commands
    # ---------------

    def save_memory(self, memory_slot: int) -> None:
        self._validate_memory_slot(memory_slot)
        self._dispatcher.dispatch(SaveMemory(memory_slot))

    def recall_memory(self, memory_slot: int) -> None:
        self._validate_memory_slot(memory_slot)
        self._dispatcher.dispatch(RecallMemory(memory_slot))

    # ---------------
    # System commands
    # ---------------

    def reset(self) -> None:
        """Reset the switcher (reloads memory 1). Blocks for the reset settle window."""
        self._dispatcher.dispatch(Reset())

    def reset_to_defaults(self) -> None:
        self._dispatcher.dispatch(FactoryReset())

    def get_version(self) -> str:
        response = self._dispatcher.dispatch(Version(), force_expect_response=True)
        return parse_version(response)

    def set_baud_rate(self, baud_rate: int) -> None:
        """
        Change the switcher's baud rate.

        The stored line settings follow only after the switcher acknowledged
        the change. The host port keeps its rate until it is reopened; the
        next :meth:`connect` uses the new rate.

        Raises:
            InvalidBaudRate: Rate is not the integer 2400, 4800 or 9600
        """
        if (not isinstance(baud_rate, int) or isinstance(baud_rate, bool)
                or baud_rate not in SUPPORTED_BAUD_RATES):
            raise InvalidBaudRate(
                f"Invalid baud rate {baud_rate!r}. Must be 2400, 4800, or 9600"
            )
        self._dispatcher.dispatch(SetBaudRate(baud_rate))
        self._line_config = self._dispatcher.config.with_baud_rate(baud_rate)
        self._dispatcher.update_config(self._line_config)
        self._logger.info(f"Switcher baud rate set to {baud_rate}; reconnect to use it")
        if self._on_baud_rate_change is not None:
            self._on_baud_rate_change(baud_rate)

    def set_vertical_interval_switching(self, enabled: bool) -> None:
        self._dispatcher.dispatch(SetVerticalInterval(bool(enabled)))

    # ----------------------------------------------------------
    # Programming commands (non-volatile memory, use sparingly)
    # ----------------------------------------------------------

    def set_module_id(self, module_id: int) -> None:
        self._validate_unit_id(module_id)
        self._dispatcher.dispatch(SetModuleId(module_id))

    def set_matrix_size(self, inputs: int, outputs: int) -> None:
        self._validate_range('Matrix inputs', inputs, 0, self.MAX_PROGRAMMABLE)
        self._validate_range('Matrix outputs', outputs, 0, self.MAX_PROGRAMMABLE)
        self._dispatcher.dispatch(SetMatrixSize(inputs, outputs))
        self._matrix_size = MatrixSize(inputs, outputs)

    def set_offset(self, input_offset: int, output_offset: int) -> None:
        self._validate_range('Input offset', input_offset, 0, self.MAX_PROGRAMMABLE)
        self._validate_range('Output offset', output_offset, 0, self.MAX_PROGRAMMABLE)
        self._dispatcher.dispatch(SetOffset(input_offset, output_offset))
        self._offset = Offset(input_offset, output_offset)

    # ---------------
    # Utility methods
    # ---------------

    def send_raw_command(self, command: str, expect_response: bool = False) -> str:
        """
        Send command text as-is, subject to the normal feedback policy.

        Args:
            command: Wire text, e.g. '[I01O02]'
            expect_response: Read a reply even without the acknowledgement flag

        Returns:
            The reply text, or '' when none was awaited
        """
        if not command or not isinstance(command, str):
            raise InvalidArgument("Command must be a non-empty string")
        return self._dispatcher.dispatch(command, force_expect_response=expect_response)

    def test_connection(self) -> bool:
        """Check the link with a version query."""
        try:
            self.get_version()
            return True
        except HomerunError as ex:
            self._logger.warning(f"Connection test failed: {ex}")
            return False

    def get_switcher_info(self) -> SwitcherInfo:
        """
        Assemble a :class:`SwitcherInfo` from a version and a status query.

        The output count comes from the status table width; unit id, matrix
        size and offset are the last values programmed through this driver.
        """
        version = self.get_version()
        table = self._dispatcher.dispatch(StatusAll(), force_expect_response=True)
        outputs = count_outputs(table)
        return SwitcherInfo(
            version=version,
            unit_id=self._unit_id,
            baud_rate=self.configuration.baud_rate,
            matrix_size=self._matrix_size or MatrixSize(outputs, outputs),
            offset=self._offset,
        )

    def get_debug_info(self) -> Dict[str, Any]:
        return {
            'connected': self.is_connected,
            'config': self.configuration.to_dict(),
        }

    # ------------------
    # Validation methods
    # ------------------

    @staticmethod
    def _validate_range(name: str, value: int, low: int, high: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
            raise InvalidArgument(f"{name} must be between {low}-{high}, got {value!r}")

    def _validate_input(self, input: int) -> None:
        self._validate_range('Input', input, self.MIN_PORT, self.MAX_PORT)

    def _validate_output(self, output: int) -> None:
        self._validate_range('Output', output, self.MIN_PORT, self.MAX_PORT)

    def _validate_input_output(self, input: int, output: int) -> None:
        self._validate_input(input)
        self._validate_output(output)

    def _validate_unit_id(self, unit_id: int) -> None:
        self._validate_range('Unit ID', unit_id, self.MIN_UNIT_ID, self.MAX_UNIT_ID)

    def _validate_memory_slot(self, slot: int) -> None:
        self._validate_range('Memory slot', slot, self.MIN_MEMORY_SLOT, self.MAX_MEMORY_SLOT)
