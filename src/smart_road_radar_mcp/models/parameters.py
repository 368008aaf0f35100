"""Detection envelope parameters: the 32-byte SET/GET_PARAMETERS payload.

Layout (offsets within the payload, all float32 little-endian)::

    +---------+---------+---------+---------+---------+---------+---------+---------+
    | 0x00    | 0x04    | 0x08    | 0x0C    | 0x10    | 0x14    | 0x18    | 0x1C    |
    | min_dst | max_dst | min_spd | max_spd | min_ang | max_ang | left    | right   |
    +---------+---------+---------+---------+---------+---------+---------+---------+

This is the order the device expects in SET_PARAMETERS. The firmware
answers GET_PARAMETERS with min and max exchanged for both distance and
speed (max_dst at 0x00, min_dst at 0x04, max_spd at 0x08, min_spd at
0x0C). That is how the device behaves and is decoded as such.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, astuple
from enum import Enum

from ..errors import InvalidFrameError

PARAMETERS_SIZE = 32
_STRUCT = struct.Struct("<8f")

DEFAULT_MIN_DISTANCE = 0.0
DEFAULT_MAX_DISTANCE = 13.0
DEFAULT_MIN_SPEED = 0.0
DEFAULT_MAX_SPEED = 5.0
DEFAULT_MIN_ANGLE = -60.0
DEFAULT_MAX_ANGLE = 60.0
DEFAULT_LEFT_BORDER = -6.0
DEFAULT_RIGHT_BORDER = 6.0


class ParameterLayout(Enum):
    """Field order of the envelope on the wire."""

    REQUEST = "request"    # declared order, as sent with SET_PARAMETERS
    RESPONSE = "response"  # distance and speed min/max swapped, as returned by GET_PARAMETERS


# Position of each declared field within the wire tuple.
_WIRE_ORDER = {
    ParameterLayout.REQUEST: (0, 1, 2, 3, 4, 5, 6, 7),
    ParameterLayout.RESPONSE: (1, 0, 3, 2, 4, 5, 6, 7),
}


@dataclass(frozen=True)
class Parameters:
    """Detection envelope used by the radar to filter reported targets.

    Distances are metres, speeds metres/second, angles degrees, borders
    metres left/right of the boresight.
    """

    min_distance: float = DEFAULT_MIN_DISTANCE
    max_distance: float = DEFAULT_MAX_DISTANCE
    min_speed: float = DEFAULT_MIN_SPEED
    max_speed: float = DEFAULT_MAX_SPEED
    min_angle: float = DEFAULT_MIN_ANGLE
    max_angle: float = DEFAULT_MAX_ANGLE
    left_border: float = DEFAULT_LEFT_BORDER
    right_border: float = DEFAULT_RIGHT_BORDER

    def to_bytes(self, layout: ParameterLayout = ParameterLayout.REQUEST) -> bytes:
        """Serialize to the 32-byte wire payload."""
        return pack(self, layout)

    @classmethod
    def from_bytes(
        cls, data: bytes, layout: ParameterLayout = ParameterLayout.RESPONSE
    ) -> Parameters:
        """Deserialize a 32-byte wire payload."""
        return unpack(data, layout)

    def to_dict(self) -> dict:
        return {
            "min_distance": self.min_distance,
            "max_distance": self.max_distance,
            "min_speed": self.min_speed,
            "max_speed": self.max_speed,
            "min_angle": self.min_angle,
            "max_angle": self.max_angle,
            "left_border": self.left_border,
            "right_border": self.right_border,
        }


def pack(parameters: Parameters, layout: ParameterLayout = ParameterLayout.REQUEST) -> bytes:
    """Pack an envelope into 32 bytes using the given wire layout."""
    values = astuple(parameters)
    order = _WIRE_ORDER[layout]
    return _STRUCT.pack(*(values[i] for i in order))


def unpack(data: bytes, layout: ParameterLayout = ParameterLayout.RESPONSE) -> Parameters:
    """Unpack 32 wire bytes into an envelope using the given wire layout.

    Raises:
        InvalidFrameError: If ``data`` is not exactly 32 bytes.
    """
    if len(data) != PARAMETERS_SIZE:
        raise InvalidFrameError(
            f"Parameters payload must be {PARAMETERS_SIZE} bytes, got {len(data)}"
        )
    wire = _STRUCT.unpack(bytes(data))
    order = _WIRE_ORDER[layout]
    values = [0.0] * len(wire)
    for wire_index, field_index in enumerate(order):
        values[field_index] = wire[wire_index]
    return Parameters(*values)
