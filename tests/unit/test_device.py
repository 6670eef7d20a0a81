"""
Unit tests for the HOMERUN switcher public API.

Runs every operation over the scripted FakeTransport and checks the wire
text written, argument validation, and parsed results.
"""

import pytest
from unittest.mock import Mock, patch

# Import module under test
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from HomerunDevice import HomerunMatrixSwitcher
from homerun_exceptions import (
    DeviceRejected,
    InvalidArgument,
    InvalidBaudRate,
    NotConnected,
    ResponseTimeout,
    TransportOpenFailed,
)
from homerun_types import ConnectionStatus, MatrixSize, Offset, SerialConfig, SessionState


class TestLifecycle:
    """Test connect/disconnect behaviour."""

    @pytest.mark.unit
    def test_connect_uses_default_config(self, fake_transport, mock_logger):
        switcher = HomerunMatrixSwitcher(fake_transport, mock_logger, SerialConfig(baud_rate=4800))

        switcher.connect()

        assert switcher.is_connected
        assert fake_transport.opened_with.baud_rate == 4800
        assert switcher.configuration.baud_rate == 4800

    @pytest.mark.unit
    def test_connect_with_explicit_config(self, fake_transport, mock_logger):
        switcher = HomerunMatrixSwitcher(fake_transport, mock_logger)

        switcher.connect(SerialConfig(baud_rate=9600))

        assert switcher.configuration.baud_rate == 9600

    @pytest.mark.unit
    def test_failed_connect_stays_disconnected(self, fake_transport, mock_logger):
        """A failed open leaves the session disconnected; disconnect is still safe."""
        fake_transport.fail_open = True
        switcher = HomerunMatrixSwitcher(fake_transport, mock_logger)

        with pytest.raises(TransportOpenFailed):
            switcher.connect()

        assert switcher.dispatcher.state == SessionState.DISCONNECTED
        switcher.disconnect()
        assert not switcher.is_connected

    @pytest.mark.unit
    def test_disconnect_is_idempotent(self, connected_switcher):
        connected_switcher.disconnect()
        connected_switcher.disconnect()
        assert not connected_switcher.is_connected

    @pytest.mark.unit
    def test_commands_need_connection(self, fake_transport, mock_logger, no_sleep):
        switcher = HomerunMatrixSwitcher(fake_transport, mock_logger)

        with pytest.raises(NotConnected):
            switcher.connect_input_to_output(1, 1)
        assert fake_transport.writes == []

    @pytest.mark.unit
    def test_context_manager_disconnects(self, fake_transport, mock_logger):
        with HomerunMatrixSwitcher(fake_transport, mock_logger) as switcher:
            switcher.connect()
        assert not switcher.is_connected

    @pytest.mark.unit
    def test_debug_info(self, connected_switcher):
        info = connected_switcher.get_debug_info()
        assert info['connected'] is True
        assert info['config']['baud_rate'] == 2400
        assert info['config']['parity'] == 'none'

    @pytest.mark.unit
    def test_from_config(self, mock_logger):
        device_config = Mock()
        device_config.dev_port = 'loop://'
        device_config.serial_config.return_value = SerialConfig(baud_rate=9600)
        device_config.timing.return_value = {'command_delay_ms': 10, 'read_attempts': 2}

        switcher = HomerunMatrixSwitcher.from_config(device_config, mock_logger)

        assert switcher.dispatcher.reader.max_attempts == 2
        assert switcher.dispatcher.settle_delay_ms(Mock(kind=None)) == 10

    @pytest.mark.unit
    def test_from_config_stores_new_baud_rate(self, fake_transport, mock_logger, no_sleep):
        device_config = Mock()
        device_config.serial_config.return_value = SerialConfig()
        device_config.timing.return_value = {}
        with patch('HomerunDevice.SerialTransport', return_value=fake_transport):
            switcher = HomerunMatrixSwitcher.from_config(device_config, mock_logger)
        switcher.connect()
        fake_transport.queue(b'[OK]')

        switcher.set_baud_rate(9600)

        device_config.store_baud_rate.assert_called_once_with(9600)


class TestControlCommands:
    """Test cross-point and unit commands."""

    @pytest.mark.unit
    def test_connect_input_to_output(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]')

        connected_switcher.connect_input_to_output(3, 7)

        assert fake_transport.writes == ['[I03O07F]']

    @pytest.mark.unit
    def test_salvo(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]', b'[OK]', b'[OK]')

        connected_switcher.set_path(2, 3)
        connected_switcher.set_path(4, 5)
        connected_switcher.execute_switch()

        assert fake_transport.writes == ['[I02O03PF]', '[I04O05PF]', '[SWF]']

    @pytest.mark.unit
    def test_disconnect_output(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]')

        connected_switcher.disconnect_output(16)

        assert fake_transport.writes == ['[I00O16F]']

    @pytest.mark.unit
    def test_connect_with_unit_id(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]')

        connected_switcher.connect_with_unit_id(1, 2, 3)

        assert fake_transport.writes == ['[I01O02U3F]']

    @pytest.mark.unit
    def test_set_unit_id(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]', b'[OK]')

        connected_switcher.set_unit_id(0)
        connected_switcher.set_exclusive_unit(9)

        assert fake_transport.writes == ['[UID0F]', '[UID9EF]']

    @pytest.mark.unit
    def test_rejected_connect_raises(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[ERR]')

        with pytest.raises(DeviceRejected):
            connected_switcher.connect_input_to_output(1, 1)


class TestValidation:
    """Out-of-range arguments are refused before anything is written."""

    @pytest.mark.unit
    @pytest.mark.parametrize('call', [
        lambda s: s.connect_input_to_output(0, 1),
        lambda s: s.connect_input_to_output(17, 1),
        lambda s: s.connect_input_to_output(1, 0),
        lambda s: s.connect_input_to_output(1, 17),
        lambda s: s.connect_input_to_output(True, 1),
        lambda s: s.connect_input_to_output(1.0, 1),
        lambda s: s.set_path(1, 17),
        lambda s: s.disconnect_output(0),
        lambda s: s.connect_with_unit_id(1, 1, 10),
        lambda s: s.set_unit_id(10),
        lambda s: s.set_unit_id(-1),
        lambda s: s.set_exclusive_unit(1),
        lambda s: s.get_input_connections(0),
        lambda s: s.get_output_connection(17),
        lambda s: s.save_memory(17),
        lambda s: s.recall_memory(-1),
        lambda s: s.set_module_id(10),
        lambda s: s.set_matrix_size(97, 16),
        lambda s: s.set_offset(0, 97),
        lambda s: s.send_raw_command(''),
    ])
    def test_rejected_without_write(self, connected_switcher, fake_transport, call):
        with pytest.raises(InvalidArgument):
            call(connected_switcher)
        assert fake_transport.writes == []

    @pytest.mark.unit
    @pytest.mark.parametrize('baud_rate', [1200, 2400.0, 9600.0, True, '9600'])
    def test_invalid_baud_rate(self, connected_switcher, fake_transport, baud_rate):
        with pytest.raises(InvalidBaudRate):
            connected_switcher.set_baud_rate(baud_rate)
        assert fake_transport.writes == []
        assert connected_switcher.configuration.baud_rate == 2400

    @pytest.mark.unit
    @pytest.mark.parametrize('slot', [0, 16])
    def test_memory_slot_limits_accepted(self, connected_switcher, fake_transport, slot):
        fake_transport.queue(b'[OK]')
        connected_switcher.save_memory(slot)
        assert fake_transport.writes == [f'[SAV{slot:02d}F]']


class TestQueries:
    """Test status and version queries."""

    @pytest.mark.unit
    def test_get_all_connections(self, connected_switcher, fake_transport):
        fake_transport.queue(b'010000030000')

        connections = connected_switcher.get_all_connections()

        assert fake_transport.writes == ['[IXXOXXX]']
        assert connections == [ConnectionStatus(1, 1), ConnectionStatus(3, 4)]

    @pytest.mark.unit
    def test_get_input_connections(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[0205]')

        assert connected_switcher.get_input_connections(4) == [2, 5]
        assert fake_transport.writes == ['[I04OXXX]']

    @pytest.mark.unit
    def test_get_output_connection(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[03]')

        assert connected_switcher.get_output_connection(12) == 3
        assert fake_transport.writes == ['[IXXO12X]']

    @pytest.mark.unit
    def test_get_version(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[HOMERUN V2.01]')

        assert connected_switcher.get_version() == 'HOMERUN V2.01'
        assert fake_transport.writes == ['[VERN]']

    @pytest.mark.unit
    def test_query_timeout(self, connected_switcher):
        with pytest.raises(ResponseTimeout):
            connected_switcher.get_version()

    @pytest.mark.unit
    def test_connection_check(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[V1]')
        assert connected_switcher.test_connection() is True
        assert connected_switcher.test_connection() is False

    @pytest.mark.unit
    def test_connection_check_when_disconnected(self, fake_transport, mock_logger):
        switcher = HomerunMatrixSwitcher(fake_transport, mock_logger)
        assert switcher.test_connection() is False


class TestSystemCommands:
    """Test memory, reset, baud and programming commands."""

    @pytest.mark.unit
    def test_memory(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]', b'[OK]')

        connected_switcher.save_memory(2)
        connected_switcher.recall_memory(2)

        assert fake_transport.writes == ['[SAV02F]', '[RCL02F]']

    @pytest.mark.unit
    def test_reset_waits_settle_window(self, connected_switcher, fake_transport, no_sleep):
        fake_transport.queue(b'[OK]', b'[OK]')

        connected_switcher.reset()
        connected_switcher.reset_to_defaults()

        assert fake_transport.writes == ['[RSETF]', '[RSETDF]']
        assert [c.args[0] for c in no_sleep.call_args_list] == [10.0, 10.0]

    @pytest.mark.unit
    def test_set_baud_rate_updates_stored_config(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]')

        connected_switcher.set_baud_rate(9600)

        assert fake_transport.writes == ['[BAUD6F]']
        assert connected_switcher.configuration.baud_rate == 9600
        assert connected_switcher.is_connected

    @pytest.mark.unit
    def test_rejected_baud_change_keeps_config(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[ERR]')

        with pytest.raises(DeviceRejected):
            connected_switcher.set_baud_rate(4800)
        assert connected_switcher.configuration.baud_rate == 2400

    @pytest.mark.unit
    def test_reconnect_after_baud_change_uses_new_rate(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]')

        connected_switcher.set_baud_rate(9600)
        connected_switcher.disconnect()
        connected_switcher.connect()

        assert fake_transport.opened_with.baud_rate == 9600
        assert connected_switcher.configuration.baud_rate == 9600

    @pytest.mark.unit
    def test_explicit_config_kept_for_reconnect(self, fake_transport, mock_logger):
        switcher = HomerunMatrixSwitcher(fake_transport, mock_logger)
        switcher.connect(SerialConfig(baud_rate=4800))
        switcher.disconnect()

        switcher.connect()

        assert fake_transport.opened_with.baud_rate == 4800

    @pytest.mark.unit
    def test_acknowledged_baud_rate_reported(self, fake_transport, mock_logger, no_sleep):
        on_change = Mock()
        switcher = HomerunMatrixSwitcher(fake_transport, mock_logger, on_baud_rate_change=on_change)
        switcher.connect()
        fake_transport.queue(b'[OK]', b'[ERR]')

        switcher.set_baud_rate(4800)
        with pytest.raises(DeviceRejected):
            switcher.set_baud_rate(9600)

        on_change.assert_called_once_with(4800)

    @pytest.mark.unit
    def test_vertical_interval(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]', b'[OK]')

        connected_switcher.set_vertical_interval_switching(True)
        connected_switcher.set_vertical_interval_switching(False)

        assert fake_transport.writes == ['[VIS1F]', '[VIS0F]']

    @pytest.mark.unit
    def test_programming_commands(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]', b'[OK]', b'[OK]')

        connected_switcher.set_module_id(5)
        connected_switcher.set_matrix_size(16, 16)
        connected_switcher.set_offset(8, 0)

        assert fake_transport.writes == ['[SETID5F]', '[I16O16SF]', '[I08O00AF]']

    @pytest.mark.unit
    def test_send_raw_command(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]')

        assert connected_switcher.send_raw_command('[I01O02]') == '[OK]'
        assert fake_transport.writes == ['[I01O02F]']

    @pytest.mark.unit
    def test_send_raw_query_with_reply(self, connected_switcher, fake_transport):
        fake_transport.queue(b'0102')

        assert connected_switcher.send_raw_command('[IXXOXXX]', expect_response=True) == '0102'
        assert fake_transport.writes == ['[IXXOXXX]']


class TestSwitcherInfo:
    """Test the switcher snapshot."""

    @pytest.mark.unit
    def test_inferred_from_queries(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[V2.01]', b'01' * 16)

        info = connected_switcher.get_switcher_info()

        assert info.version == 'V2.01'
        assert info.baud_rate == 2400
        assert info.unit_id == 0
        assert info.matrix_size == MatrixSize(16, 16)
        assert info.offset == Offset(0, 0)
        assert fake_transport.writes == ['[VERN]', '[IXXOXXX]']

    @pytest.mark.unit
    def test_reflects_programmed_values(self, connected_switcher, fake_transport):
        fake_transport.queue(b'[OK]', b'[OK]', b'[OK]', b'[V2]', b'0000')

        connected_switcher.set_unit_id(3)
        connected_switcher.set_matrix_size(32, 16)
        connected_switcher.set_offset(16, 0)
        info = connected_switcher.get_switcher_info()

        assert info.unit_id == 3
        assert info.matrix_size == MatrixSize(32, 16)
        assert info.offset == Offset(16, 0)
