# File: homerun_serial.py
"""
Serial transport, response framing and command dispatch for the HOMERUN
matrix switcher.

The switcher accepts one command at a time and needs a settle delay after
each one, so :class:`CommandDispatcher` is the only writer on the line and
holds a lock around every command/response exchange.

Example:
    Basic usage with a pyserial port:

    >>> dispatcher = CommandDispatcher(SerialTransport('/dev/ttyUSB0'), logger)
    >>> dispatcher.open(SerialConfig(baud_rate=9600))
    >>> dispatcher.dispatch(Connect(3, 7))
    '[OK]'
    >>> dispatcher.close()
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

import serial

from homerun_commands import CommandLike, Command, is_reset, plan_feedback
from homerun_exceptions import (
    HomerunError,
    InvalidArgument,
    NotConnected,
    ResponseTimeout,
    TransportError,
    TransportIOFailed,
    TransportOpenFailed,
)
from homerun_protocol import is_complete_response, validate_feedback_response
from homerun_types import FlowControl, Parity, SerialConfig, SessionState


# Constants
DEFAULT_COMMAND_DELAY_MS = 100
DEFAULT_RESET_DELAY_MS = 10000
DEFAULT_READ_TIMEOUT_MS = 2000
DEFAULT_READ_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_MS = 100

# Replies end with ']' except the bare status tables, which end when the
# line goes quiet.
FRAME_END = b']'
GAP_CHARACTERS = 5
MIN_INTER_BYTE_GAP_S = 0.05

_PARITY = {
    Parity.NONE: serial.PARITY_NONE,
    Parity.EVEN: serial.PARITY_EVEN,
    Parity.ODD: serial.PARITY_ODD,
}
_BYTESIZE = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}
_STOPBITS = {
    1: serial.STOPBITS_ONE,
    2: serial.STOPBITS_TWO,
}


def inter_byte_gap(baud_rate: int) -> float:
    """Seconds of silence that end a reply: a few character times, with a floor."""
    # 10 bits per character: start, 8 data, stop
    return max(MIN_INTER_BYTE_GAP_S, GAP_CHARACTERS * 10.0 / baud_rate)


class Transport(ABC):
    """Byte transport consumed by the dispatcher.

    Implementations raise :class:`TransportOpenFailed` from :meth:`open` and
    :class:`TransportIOFailed` from :meth:`write`, :meth:`read` and
    :meth:`close`.
    """

    @abstractmethod
    def open(self, config: SerialConfig) -> None:
        ...

    @abstractmethod
    def write(self, data: bytes) -> None:
        ...

    @abstractmethod
    def read(self, timeout_ms: int) -> bytes:
        """Return the next chunk of received bytes, or ``b''`` on timeout."""
        ...

    @abstractmethod
    def close(self) -> None:
        ...


class SerialTransport(Transport):
    """
    pyserial transport.

    Accepts anything ``serial.serial_for_url`` understands: a device path
    ('/dev/ttyUSB0', 'COM3') or a URL ('socket://host:port', 'loop://').
    """

    def __init__(self, port: str, logger: Optional[logging.Logger] = None):
        if not port or not isinstance(port, str):
            raise ValueError("Port must be a non-empty string")
        self._port = port
        self._logger = logger or logging.getLogger(__name__)
        self._serial: Optional[serial.Serial] = None
        self._inter_byte_gap = MIN_INTER_BYTE_GAP_S

    @property
    def port(self) -> str:
        return self._port

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self, config: SerialConfig) -> None:
        try:
            ser = serial.serial_for_url(self._port, do_not_open=True)
            ser.baudrate = config.baud_rate
            ser.bytesize = _BYTESIZE[config.data_bits]
            ser.parity = _PARITY[config.parity]
            ser.stopbits = _STOPBITS[config.stop_bits]
            ser.rtscts = config.flow_control == FlowControl.HARDWARE
            ser.timeout = DEFAULT_READ_TIMEOUT_MS / 1000.0
            ser.open()
        except KeyError as ex:
            raise TransportOpenFailed(f"Unsupported line setting: {ex}") from ex
        except (serial.SerialException, ValueError, OSError) as ex:
            self._logger.error(f"Failed to open serial connection on {self._port}: {ex}")
            raise TransportOpenFailed(f"Serial connection failed: {ex}") from ex

        self._serial = ser
        self._inter_byte_gap = inter_byte_gap(config.baud_rate)
        self._logger.info(
            f"Serial connection opened: {self._port} @ {config.baud_rate} baud "
            f"({config.data_bits}{config.parity.value[0].upper()}{config.stop_bits})"
        )

    def write(self, data: bytes) -> None:
        if not self.is_open:
            raise TransportIOFailed("Serial port not open")
        try:
            # Drop bytes left over from an earlier exchange
            self._serial.reset_input_buffer()
            self._serial.write(data)
            self._serial.flush()
        except (serial.SerialException, OSError) as ex:
            raise TransportIOFailed(f"Serial write failed: {ex}") from ex

    def read(self, timeout_ms: int) -> bytes:
        """
        Wait up to ``timeout_ms`` for the first byte, then keep collecting
        until a closing bracket arrives or the line goes quiet for a few
        character times.
        """
        if not self.is_open:
            raise TransportIOFailed("Serial port not open")
        try:
            self._serial.timeout = timeout_ms / 1000.0
            buffer = self._serial.read(1)
            if not buffer:
                return b''
            self._serial.timeout = self._inter_byte_gap
            try:
                while FRAME_END not in buffer:
                    chunk = self._serial.read(max(1, self._serial.in_waiting))
                    if not chunk:
                        break
                    buffer += chunk
            finally:
                self._serial.timeout = timeout_ms / 1000.0
            return buffer
        except (serial.SerialException, OSError) as ex:
            raise TransportIOFailed(f"Serial read failed: {ex}") from ex

    def close(self) -> None:
        if self._serial is None:
            return
        try:
            if self._serial.is_open:
                self._serial.close()
                self._logger.info("Serial connection closed")
        except (serial.SerialException, OSError) as ex:
            raise TransportIOFailed(f"Error closing serial connection: {ex}") from ex
        finally:
            self._serial = None


class ResponseReader:
    """Accumulates reply bytes until a complete frame or the attempts run out."""

    def __init__(
        self,
        transport: Transport,
        logger: Optional[logging.Logger] = None,
        timeout_ms: int = DEFAULT_READ_TIMEOUT_MS,
        max_attempts: int = DEFAULT_READ_ATTEMPTS,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._transport = transport
        self._logger = logger or logging.getLogger(__name__)
        self.timeout_ms = timeout_ms
        self.max_attempts = max_attempts
        self.retry_delay_ms = retry_delay_ms

    def read(
        self,
        timeout_ms: Optional[int] = None,
        max_attempts: Optional[int] = None,
        command: Optional[str] = None,
    ) -> str:
        """
        Read one reply.

        Each attempt waits up to ``timeout_ms`` for a chunk. After an
        incomplete chunk the reader pauses ``retry_delay_ms`` and tries again.
        Transport read failures count as attempts.

        Args:
            timeout_ms: Per-attempt timeout (defaults to the reader's)
            max_attempts: Number of reads before giving up
            command: Wire text of the command being answered, for errors

        Returns:
            The trimmed reply text

        Raises:
            ResponseTimeout: No complete reply within the attempts
            TransportIOFailed: Every attempt failed in the transport
        """
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        max_attempts = self.max_attempts if max_attempts is None else max_attempts

        response = ''
        io_failures = 0
        last_error: Optional[TransportIOFailed] = None

        for attempt in range(1, max_attempts + 1):
            try:
                chunk = self._transport.read(timeout_ms)
            except TransportIOFailed as ex:
                io_failures += 1
                last_error = ex
                self._logger.warning(f"Read attempt {attempt}/{max_attempts} failed: {ex}")
                continue

            if not chunk:
                self._logger.debug(f"Read attempt {attempt}/{max_attempts} timed out")
                continue

            response += chunk.decode('ascii', errors='replace')
            if is_complete_response(response):
                return response.strip()

            if attempt < max_attempts:
                time.sleep(self.retry_delay_ms / 1000.0)

        if io_failures == max_attempts:
            raise TransportIOFailed(
                f"Failed to read response after {max_attempts} attempts: {last_error}", command
            ) from last_error

        raise ResponseTimeout(
            f"No complete response after {max_attempts} attempts"
            + (f" (partial: {response.strip()!r})" if response.strip() else ""),
            command,
            partial=response.strip(),
        )


class CommandDispatcher:
    """
    Single-writer command channel to the switcher.

    Owns the session state and the serial line settings. Every call to
    :meth:`dispatch` runs to completion under the lock: write, settle delay,
    optional reply read and acknowledgement check.
    """

    def __init__(
        self,
        transport: Transport,
        logger: Optional[logging.Logger] = None,
        command_delay_ms: int = DEFAULT_COMMAND_DELAY_MS,
        reset_delay_ms: int = DEFAULT_RESET_DELAY_MS,
        read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS,
        read_attempts: int = DEFAULT_READ_ATTEMPTS,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
    ):
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._transport = transport
        self._state = SessionState.DISCONNECTED
        self._config = SerialConfig()
        self._command_delay_ms = command_delay_ms
        self._reset_delay_ms = reset_delay_ms
        self._reader = ResponseReader(
            transport, self._logger, read_timeout_ms, read_attempts, retry_delay_ms
        )

    def __enter__(self) -> 'CommandDispatcher':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_connected(self) -> bool:
        return self.state == SessionState.CONNECTED

    @property
    def config(self) -> SerialConfig:
        with self._lock:
            return self._config

    @property
    def reader(self) -> ResponseReader:
        return self._reader

    def open(self, config: SerialConfig) -> None:
        """
        Open the transport and enter the connected state.

        Raises:
            TransportOpenFailed: The transport could not be opened; the
                session stays disconnected
        """
        with self._lock:
            if self._state == SessionState.CONNECTED:
                self._logger.debug("Open called while already connected")
                return

            try:
                self._transport.open(config)
            except TransportOpenFailed:
                raise
            except Exception as ex:
                raise TransportOpenFailed(f"Transport open failed: {ex}") from ex

            self._config = config
            self._state = SessionState.CONNECTED
            self._logger.info(f"Session connected at {config.baud_rate} baud")

    def close(self) -> None:
        """Release the transport. Never raises; release failures are logged."""
        with self._lock:
            if self._state == SessionState.DISCONNECTED:
                self._logger.debug("Close called when already disconnected")
                return
            try:
                self._transport.close()
            except Exception as ex:
                self._logger.warning(f"Error releasing transport: {ex}")
            finally:
                self._state = SessionState.DISCONNECTED
            self._logger.info("Session disconnected")

    def update_config(self, config: SerialConfig) -> None:
        with self._lock:
            self._config = config

    def settle_delay_ms(self, command: Command) -> int:
        return self._reset_delay_ms if is_reset(command) else self._command_delay_ms

    def dispatch(self, command: CommandLike, force_expect_response: bool = False) -> str:
        """
        Send one command and, if a reply is expected, read and check it.

        Args:
            command: Command variant or wire text
            force_expect_response: Read a reply even when no acknowledgement
                flag is sent (status and version queries)

        Returns:
            The trimmed reply, or '' when no reply was awaited

        Raises:
            NotConnected: The session is disconnected
            TransportIOFailed: The transport failed to write or read
            ResponseTimeout: No complete reply arrived
            DeviceRejected: The switcher answered ``[ERR]``
            NoResponse: An acknowledged command got an empty reply
        """
        plan = plan_feedback(command, force_expect_response)

        try:
            data = plan.wire.encode('ascii')
        except UnicodeEncodeError as ex:
            raise InvalidArgument(f"Command must be ASCII: {plan.wire!r}", plan.wire) from ex

        with self._lock:
            if self._state != SessionState.CONNECTED:
                raise NotConnected("Not connected to switcher", plan.wire)

            try:
                self._logger.debug(f"Sending command: {plan.wire}")
                try:
                    self._transport.write(data)
                except TransportError as ex:
                    raise TransportIOFailed(str(ex), plan.wire) from ex
                except OSError as ex:
                    raise TransportIOFailed(f"Serial communication error: {ex}", plan.wire) from ex

                time.sleep(self.settle_delay_ms(plan.command) / 1000.0)

                response = ''
                if plan.expect_response:
                    response = self._reader.read(command=plan.wire)
                    self._logger.debug(f"Received response: {response}")

                    if plan.suffixed:
                        warning = validate_feedback_response(response, plan.command)
                        if warning is not None:
                            self._logger.warning(str(warning))

                return response

            except HomerunError as ex:
                self._logger.error(f"Command {plan.wire} failed: {ex}")
                raise
