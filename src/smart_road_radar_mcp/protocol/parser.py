"""Response parsing for device messages.

Parsers take a valid ``Frame`` and return a value object, raising
``InvalidFrameError`` when the frame is of the wrong kind or its payload
is malformed. Callers treat that like a checksum failure: discard and
keep reading.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvalidFrameError
from ..models.parameters import Parameters, ParameterLayout
from ..models.targets import TargetProtocol, TargetRecord, TARGET_PROTOCOL, decode_targets
from .commands import Command, Status
from .framing import Frame


@dataclass(frozen=True)
class FirmwareVersion:
    """Parsed READ_VERSION (0x11) response."""

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"V{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class StatusResponse:
    """Parsed READ_STATUS (0x50) response."""

    status: int

    @property
    def success(self) -> bool:
        return self.status == Status.SUCCESS


def _expect(frame: Frame, command: Command) -> None:
    if not frame.valid:
        raise InvalidFrameError(f"Frame 0x{frame.command:02X} failed checksum")
    if frame.command != command:
        raise InvalidFrameError(
            f"Expected 0x{command:02X}, got 0x{frame.command:02X}"
        )


def parse_version(frame: Frame) -> FirmwareVersion:
    """Parse a READ_VERSION frame: major, minor, patch bytes."""
    _expect(frame, Command.READ_VERSION)
    if len(frame.payload) < 3:
        raise InvalidFrameError(
            f"Version payload needs 3 bytes, got {len(frame.payload)}"
        )
    major, minor, patch = frame.payload[:3]
    return FirmwareVersion(major=major, minor=minor, patch=patch)


def parse_status(frame: Frame) -> StatusResponse:
    """Parse a READ_STATUS frame."""
    _expect(frame, Command.READ_STATUS)
    if not frame.payload:
        raise InvalidFrameError("Status payload is empty")
    return StatusResponse(status=frame.payload[0])


def parse_parameters(frame: Frame) -> Parameters:
    """Parse a READ_PARAMETERS frame (swapped response layout)."""
    _expect(frame, Command.READ_PARAMETERS)
    return Parameters.from_bytes(frame.payload, ParameterLayout.RESPONSE)


def parse_target_data(
    frame: Frame,
    capacity: int | None = None,
    protocol: TargetProtocol = TARGET_PROTOCOL,
) -> list[TargetRecord]:
    """Parse a READ_TARGET_DATA frame. An empty list means no detections."""
    _expect(frame, Command.READ_TARGET_DATA)
    return decode_targets(frame.payload, capacity=capacity, protocol=protocol)

