"""Additive frame checksum.

The radar protects each frame with a single byte: the low byte of the
arithmetic sum of the two length bytes, the command byte and every
payload byte. It is not a CRC and catches little beyond single-byte
corruption, but the device computes exactly this.
"""

from __future__ import annotations


def additive_checksum(data: bytes) -> int:
    """Return the low byte of the sum of ``data``."""
    return sum(data) & 0xFF


def frame_checksum(length: int, command: int, payload: bytes = b"") -> int:
    """Checksum for a frame with the given length field, command and payload."""
    return additive_checksum(
        length.to_bytes(2, "little") + bytes([command]) + payload
    )
