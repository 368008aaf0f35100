"""Serial connection to the radar.

The radar talks 8N1 at 115200 baud by default. The rest of the package
only depends on the ``ByteChannel`` contract (``read_exact``, ``unread``
and ``write_exact``), so tests and the simulator can stand in for the port.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import serial

from ..errors import ChannelError, ChannelTimeout

logger = logging.getLogger(__name__)

DEFAULT_BAUD_RATE = 115200
DEFAULT_BYTE_SIZE = 8
DEFAULT_READ_TIMEOUT = 1.0


class StopBits(Enum):
    ONE = serial.STOPBITS_ONE
    ONE_POINT_FIVE = serial.STOPBITS_ONE_POINT_FIVE
    TWO = serial.STOPBITS_TWO


class Parity(Enum):
    NONE = serial.PARITY_NONE
    EVEN = serial.PARITY_EVEN
    ODD = serial.PARITY_ODD
    MARK = serial.PARITY_MARK
    SPACE = serial.PARITY_SPACE


@dataclass(frozen=True)
class PortConfig:
    """Line settings for the serial port."""

    baud_rate: int = DEFAULT_BAUD_RATE
    byte_size: int = DEFAULT_BYTE_SIZE
    stop_bits: StopBits = StopBits.ONE
    parity: Parity = Parity.NONE
    timeout: float = DEFAULT_READ_TIMEOUT


class ByteChannel:
    """Duplex byte transport consumed by the protocol layer."""

    def read_exact(self, size: int) -> bytes:
        """Return exactly ``size`` bytes.

        Raises:
            ChannelTimeout: Fewer than ``size`` bytes arrived within the read
                timeout; the partial bytes are on the exception's ``data``.
            ChannelError: The transport failed.
        """
        raise NotImplementedError

    def unread(self, data: bytes) -> None:
        """Push bytes back so the next ``read_exact`` returns them first."""
        raise NotImplementedError

    def write_exact(self, data: bytes) -> int:
        """Write all of ``data`` and return the number of bytes written.

        Raises:
            ChannelError: The transport failed or wrote fewer bytes.
        """
        raise NotImplementedError


class SerialConnection(ByteChannel):
    """Manages the serial link to a single radar.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        conn.open()
        conn.write_exact(frame_bytes)
        header = conn.read_exact(2)
        conn.close()
    """

    def __init__(self, port: str, config: PortConfig | None = None) -> None:
        self._port = port
        self._config = config or PortConfig()
        self._serial: serial.Serial | None = None
        self._pushback = bytearray()

    @property
    def port(self) -> str:
        return self._port

    @property
    def config(self) -> PortConfig:
        return self._config

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        """Open the port with the configured line settings.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        try:
            self._serial = serial.Serial(
                port=self._port,
                baudrate=self._config.baud_rate,
                bytesize=self._config.byte_size,
                stopbits=self._config.stop_bits.value,
                parity=self._config.parity.value,
                timeout=self._config.timeout,
            )
        except (serial.SerialException, ValueError) as e:
            raise ConnectionError(
                f"Could not open radar port {self._port}: {e}"
            ) from e

        logger.info(
            "Connected to %s at %d baud", self._port, self._config.baud_rate
        )

    def close(self) -> None:
        """Close the port."""
        if self._serial is None:
            return

        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing port: %s", e)
        finally:
            self._serial = None
            self._pushback.clear()
            logger.info("Disconnected")

    def _require_open(self) -> serial.Serial:
        if not self.connected:
            raise ChannelError(f"Port {self._port} is not open")
        return self._serial

    def read_exact(self, size: int) -> bytes:
        port = self._require_open()
        data = bytes(self._pushback[:size])
        del self._pushback[:size]
        if len(data) < size:
            try:
                data += port.read(size - len(data))
            except serial.SerialException as e:
                raise ChannelError(f"Read from {self._port} failed: {e}") from e

        if len(data) < size:
            raise ChannelTimeout(
                f"Read from {self._port} timed out after {len(data)} of {size} bytes",
                data=data,
            )
        return data

    def unread(self, data: bytes) -> None:
        self._pushback[:0] = data

    def write_exact(self, data: bytes) -> int:
        port = self._require_open()
        try:
            written = port.write(data)
            port.flush()
        except serial.SerialException as e:
            raise ChannelError(f"Write to {self._port} failed: {e}") from e

        if written != len(data):
            raise ChannelError(
                f"Short write to {self._port}: {written} of {len(data)} bytes"
            )
        return written
