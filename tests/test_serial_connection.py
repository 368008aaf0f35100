"""Tests for the pyserial-backed channel."""

from unittest.mock import patch

import pytest
import serial

from smart_road_radar_mcp.client import RadarClient
from smart_road_radar_mcp.errors import ChannelError, ChannelTimeout
from smart_road_radar_mcp.transport.serial_connection import PortConfig, SerialConnection


class FakePort:
    """Stands in for ``serial.Serial``: reads drain a buffer, writes are recorded."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.buffer = bytearray()
        self.written = bytearray()
        self.is_open = True
        self.fail = False

    def read(self, size):
        if self.fail:
            raise serial.SerialException("device reports readiness to read but returned no data")
        chunk = bytes(self.buffer[:size])
        del self.buffer[:size]
        return chunk

    def write(self, data):
        self.written += data
        return len(data)

    def flush(self):
        pass

    def close(self):
        self.is_open = False


@pytest.fixture
def conn():
    with patch("serial.Serial", FakePort):
        connection = SerialConnection("/dev/ttyUSB0", PortConfig(baud_rate=9600))
        connection.open()
    yield connection
    connection.close()


def test_open_applies_line_settings(conn):
    assert conn.connected
    assert conn._serial.kwargs["baudrate"] == 9600
    assert conn._serial.kwargs["stopbits"] == serial.STOPBITS_ONE
    assert conn._serial.kwargs["parity"] == serial.PARITY_NONE


def test_open_failure_is_connection_error():
    with patch("serial.Serial", side_effect=serial.SerialException("no such port")):
        with pytest.raises(ConnectionError):
            SerialConnection("/dev/missing").open()


def test_read_exact(conn):
    conn._serial.buffer += b"\x01\x02\x03"
    assert conn.read_exact(2) == b"\x01\x02"
    assert conn.read_exact(1) == b"\x03"


def test_empty_read_times_out(conn):
    with pytest.raises(ChannelTimeout) as exc:
        conn.read_exact(4)
    assert exc.value.data == b""


def test_short_read_times_out_with_partial_data(conn):
    """A partial read is a timeout, not a transport failure."""
    conn._serial.buffer += b"\xAB\xCD"
    with pytest.raises(ChannelTimeout) as exc:
        conn.read_exact(5)
    assert exc.value.data == b"\xAB\xCD"


def test_unread_bytes_come_back_first(conn):
    conn._serial.buffer += b"\x03"
    conn.unread(b"\x01\x02")
    assert conn.read_exact(3) == b"\x01\x02\x03"


def test_serial_exception_is_channel_error(conn):
    conn._serial.fail = True
    with pytest.raises(ChannelError):
        conn.read_exact(1)


def test_read_when_closed(conn):
    conn.close()
    with pytest.raises(ChannelError):
        conn.read_exact(1)


def test_resync_after_false_header(conn):
    """A false header with a long length field does not kill the command."""
    conn._serial.buffer += bytes.fromhex("55 AA 00 01 42") + bytes(10)
    conn._serial.buffer += bytes.fromhex("55 AA 04 00 11 01 02 03 1B")
    version = RadarClient(conn).get_firmware_version()
    assert str(version) == "V1.2.3"
    assert bytes(conn._serial.written) == bytes.fromhex("55 AA 01 00 10 11")
