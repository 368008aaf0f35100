"""Frame builder and stream reader for the radar's serial protocol.

Frame layout::

    +----------+---------+---------+------------------+----------+
    | Header   |  Length | Command |     Payload      | Checksum |
    | 2 bytes  | 2 bytes | 1 byte  | length - 1 bytes |  1 byte  |
    +----------+---------+---------+------------------+----------+

- Header: 0x55 0xAA
- Length: little-endian, counts the command byte plus the payload
- Checksum: low byte of the sum of both length bytes, command and payload

Frames are read straight off the byte stream: the reader scans for the
header, so it resynchronises after noise. A header pair that happens to
appear inside payload data can still cause a false sync; the protocol
has no escaping to prevent it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import ChannelTimeout
from ..models.targets import MAX_TARGETS, MIN_RECORD_SIZE
from ..utils.checksum import frame_checksum

logger = logging.getLogger(__name__)

HEADER = b"\x55\xAA"
HEADER_LENGTH = 2
LENGTH_FIELD_SIZE = 2
COMMAND_SIZE = 1
CHECKSUM_SIZE = 1
FRAME_OVERHEAD = HEADER_LENGTH + LENGTH_FIELD_SIZE + COMMAND_SIZE + CHECKSUM_SIZE

# Largest payload accepted from the wire by default: a full target table
# of 9-byte records. Anything longer is a corrupted length field.
MAX_PAYLOAD_LENGTH = MAX_TARGETS * MIN_RECORD_SIZE

# Largest payload the length field can describe.
MAX_FRAME_PAYLOAD = 0xFFFF - COMMAND_SIZE


@dataclass(frozen=True)
class Frame:
    """A decoded protocol frame.

    ``valid`` is False when the trailing checksum did not match or the
    length field could not be trusted. Invalid frames are never treated
    as data.
    """

    command: int
    payload: bytes = b""
    checksum: int = 0
    valid: bool = True

    @property
    def length(self) -> int:
        return len(self.payload) + COMMAND_SIZE

    def __repr__(self) -> str:
        return (
            f"Frame(command=0x{self.command:02X}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'}, "
            f"valid={self.valid})"
        )


def build_frame(command: int, payload: bytes = b"") -> bytes:
    """Encode a command and payload into wire bytes.

    Args:
        command: Single-byte command word.
        payload: Command-specific payload bytes (may be empty).

    Returns:
        The complete frame, header through checksum.
    """
    if not 0 <= command <= 0xFF:
        raise ValueError(f"Command must be 0-255, got {command}")
    if len(payload) > MAX_FRAME_PAYLOAD:
        raise ValueError(
            f"Payload must be at most {MAX_FRAME_PAYLOAD} bytes, got {len(payload)}"
        )
    length = len(payload) + COMMAND_SIZE
    checksum = frame_checksum(length, command, payload)
    return (
        HEADER
        + length.to_bytes(LENGTH_FIELD_SIZE, "little")
        + bytes([command])
        + payload
        + bytes([checksum])
    )


def _sync(channel) -> None:
    """Consume bytes until the two header bytes have been read in order."""
    previous = None
    while True:
        current = channel.read_exact(1)[0]
        if previous == HEADER[0] and current == HEADER[1]:
            return
        previous = current


def read_frame(channel, max_payload: int = MAX_PAYLOAD_LENGTH) -> Frame:
    """Read the next frame from a byte channel.

    Blocks on ``channel.read_exact`` until a header has been found and the
    rest of the frame has arrived. A checksum mismatch does not raise: the
    frame is returned with ``valid=False`` so the caller can decide to
    retry.

    If the data stops mid-frame (a false header whose length runs past
    what the device sent, or a frame cut short), the bytes read after the
    header are pushed back with ``channel.unread`` so the next call can
    resync inside them, and an invalid frame is returned. A timeout while
    still looking for a header propagates as ``ChannelTimeout``; transport
    errors propagate unchanged.

    Args:
        channel: A ``ByteChannel``.
        max_payload: Longest payload trusted from the length field.
    """
    _sync(channel)

    consumed = bytearray()
    try:
        consumed += channel.read_exact(LENGTH_FIELD_SIZE + COMMAND_SIZE)
        length = int.from_bytes(consumed[:LENGTH_FIELD_SIZE], "little")
        command = consumed[LENGTH_FIELD_SIZE]

        if length < COMMAND_SIZE or length - COMMAND_SIZE > max_payload:
            logger.debug(
                "Discarding frame 0x%02X with implausible length %d", command, length
            )
            return Frame(command=command, valid=False)

        payload = b""
        if length > COMMAND_SIZE:
            payload = channel.read_exact(length - COMMAND_SIZE)
            consumed += payload

        checksum = channel.read_exact(CHECKSUM_SIZE)[0]
    except ChannelTimeout as e:
        leftover = bytes(consumed) + e.data
        channel.unread(leftover)
        logger.debug("Frame cut short after %d bytes, rescanning", len(leftover))
        command = consumed[LENGTH_FIELD_SIZE] if len(consumed) > LENGTH_FIELD_SIZE else 0
        return Frame(command=command, valid=False)

    valid = checksum == frame_checksum(length, command, payload)
    if not valid:
        logger.debug(
            "Checksum mismatch on frame 0x%02X (got 0x%02X)", command, checksum
        )
    return Frame(command=command, payload=payload, checksum=checksum, valid=valid)


def parse_frame(data: bytes) -> Frame | None:
    """Parse one complete frame held in memory.

    Args:
        data: Bytes starting at the header.

    Returns:
        A ``Frame`` (possibly with ``valid=False`` on checksum mismatch),
        or ``None`` if the header is missing or the buffer is too short
        for the length it declares.
    """
    if len(data) < FRAME_OVERHEAD or data[:HEADER_LENGTH] != HEADER:
        return None

    length = int.from_bytes(data[2:4], "little")
    if length < COMMAND_SIZE:
        return None
    end = HEADER_LENGTH + LENGTH_FIELD_SIZE + length
    if len(data) < end + CHECKSUM_SIZE:
        return None

    command = data[4]
    payload = bytes(data[5:end])
    checksum = data[end]
    return Frame(
        command=command,
        payload=payload,
        checksum=checksum,
        valid=checksum == frame_checksum(length, command, payload),
    )
