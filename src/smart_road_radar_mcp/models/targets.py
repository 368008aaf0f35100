"""Target report decoding (READ_TARGET_DATA payloads).

Each detected object occupies a fixed-size record::

    +------+----------+---------+---------+---------+
    | id   | distance | speed   | angle   | snr     |
    | 1 B  | 2 B      | 2 B     | 2 B     | 2 B     |
    +------+----------+---------+---------+---------+

The four measurements are little-endian unsigned 16-bit values in
hundredths (``value = raw * 0.01``). Record size and the position of the
first record have differed between firmware revisions, so both live on
``TargetProtocol`` rather than being hard-coded into the decoder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

SCALE = 0.01
FIELD_SIZE = 2
MIN_RECORD_SIZE = 1 + 4 * FIELD_SIZE

# Largest target table the device reports.
MAX_TARGETS = 35


@dataclass(frozen=True)
class TargetProtocol:
    """Framing of target records inside a READ_TARGET_DATA payload."""

    record_size: int = MIN_RECORD_SIZE
    payload_offset: int = 0

    def __post_init__(self) -> None:
        if self.record_size < MIN_RECORD_SIZE:
            raise ValueError(
                f"Target records need at least {MIN_RECORD_SIZE} bytes, "
                f"got {self.record_size}"
            )
        if self.payload_offset < 0:
            raise ValueError(f"Payload offset must be >= 0, got {self.payload_offset}")

    @property
    def max_payload(self) -> int:
        """Size of a report carrying a full target table."""
        return self.payload_offset + MAX_TARGETS * self.record_size


# 9-byte records starting at the first payload byte.
TARGET_PROTOCOL = TargetProtocol()


@dataclass(frozen=True)
class TargetRecord:
    """One detected object."""

    id: int
    distance: float
    speed: float
    angle: float
    snr: float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "distance": round(self.distance, 2),
            "speed": round(self.speed, 2),
            "angle": round(self.angle, 2),
            "snr": round(self.snr, 2),
        }


def _scaled(record: bytes, offset: int) -> float:
    return int.from_bytes(record[offset : offset + FIELD_SIZE], "little") * SCALE


def _scale_to_raw(value: float) -> bytes:
    raw = min(max(round(value / SCALE), 0), 0xFFFF)
    return raw.to_bytes(FIELD_SIZE, "little")


def decode_targets(
    payload: bytes,
    capacity: int | None = None,
    protocol: TargetProtocol = TARGET_PROTOCOL,
) -> list[TargetRecord]:
    """Split a target report payload into records.

    Args:
        payload: The READ_TARGET_DATA payload.
        capacity: Maximum number of records to return; ``None`` for all.
        protocol: Record framing for the device's firmware revision.

    Returns:
        The decoded targets, in wire order. A payload of one byte or less
        is a "no detections" report and yields an empty list.
    """
    if capacity is not None and capacity < 0:
        raise ValueError(f"Capacity must be >= 0, got {capacity}")
    if len(payload) <= 1:
        return []

    body = payload[protocol.payload_offset :]
    count = len(body) // protocol.record_size
    if len(body) % protocol.record_size:
        logger.debug(
            "Ignoring %d trailing bytes of target report",
            len(body) % protocol.record_size,
        )
    if capacity is not None and count > capacity:
        logger.debug("Target report holds %d records, keeping %d", count, capacity)
        count = capacity

    targets = []
    for index in range(count):
        start = index * protocol.record_size
        record = body[start : start + protocol.record_size]
        targets.append(TargetRecord(
            id=record[0],
            distance=_scaled(record, 1),
            speed=_scaled(record, 3),
            angle=_scaled(record, 5),
            snr=_scaled(record, 7),
        ))
    return targets


def encode_targets(
    targets: list[TargetRecord],
    protocol: TargetProtocol = TARGET_PROTOCOL,
) -> bytes:
    """Build a READ_TARGET_DATA payload from records.

    Values are clamped to the unsigned 16-bit range of the wire format.
    """
    padding = b"\x00" * (protocol.record_size - MIN_RECORD_SIZE)
    payload = bytearray(protocol.payload_offset)
    for target in targets:
        payload += bytes([target.id & 0xFF])
        payload += _scale_to_raw(target.distance)
        payload += _scale_to_raw(target.speed)
        payload += _scale_to_raw(target.angle)
        payload += _scale_to_raw(target.snr)
        payload += padding
    return bytes(payload)
