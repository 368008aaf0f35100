"""Shared test helpers."""

from __future__ import annotations

import pytest

from smart_road_radar_mcp.errors import ChannelError, ChannelTimeout
from smart_road_radar_mcp.transport.serial_connection import ByteChannel


class ScriptedChannel(ByteChannel):
    """Byte channel that replays queued bytes and records writes.

    Reading past the end of the queued data raises ``ChannelTimeout``,
    like a serial port whose read timeout expired.
    """

    def __init__(self, data: bytes = b"", fail_writes: bool = False) -> None:
        self.inbound = bytearray(data)
        self.writes: list[bytes] = []
        self.timeouts = 0
        self.fail_writes = fail_writes
        self.on_write = None

    def feed(self, data: bytes) -> None:
        self.inbound += data

    def read_exact(self, size: int) -> bytes:
        if len(self.inbound) < size:
            self.timeouts += 1
            raise ChannelTimeout("no data")
        chunk = bytes(self.inbound[:size])
        del self.inbound[:size]
        return chunk

    def unread(self, data: bytes) -> None:
        self.inbound[:0] = data

    def write_exact(self, data: bytes) -> int:
        if self.fail_writes:
            raise ChannelError("port closed")
        self.writes.append(bytes(data))
        if self.on_write is not None:
            self.on_write(data)
        return len(data)


@pytest.fixture
def channel() -> ScriptedChannel:
    return ScriptedChannel()
