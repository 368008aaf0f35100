"""Serial transport and channel arbitration."""

from .arbiter import ChannelArbiter
from .serial_connection import ByteChannel, PortConfig, SerialConnection
