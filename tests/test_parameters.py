"""Tests for detection envelope packing and the GET_PARAMETERS min/max swap."""

import struct

import pytest

from smart_road_radar_mcp.errors import InvalidFrameError
from smart_road_radar_mcp.models.parameters import (
    PARAMETERS_SIZE,
    Parameters,
    ParameterLayout,
    pack,
    unpack,
)

SAMPLE = Parameters(
    min_distance=1.5,
    max_distance=42.25,
    min_speed=0.1,
    max_speed=33.3,
    min_angle=-45.0,
    max_angle=30.5,
    left_border=-3.75,
    right_border=4.0,
)


def _assert_close(a: Parameters, b: Parameters) -> None:
    for key, value in a.to_dict().items():
        assert value == pytest.approx(b.to_dict()[key], abs=1e-6)


def test_defaults():
    """Defaults match the device's factory envelope."""
    p = Parameters()
    assert (p.min_distance, p.max_distance) == (0.0, 13.0)
    assert (p.min_speed, p.max_speed) == (0.0, 5.0)
    assert (p.min_angle, p.max_angle) == (-60.0, 60.0)
    assert (p.left_border, p.right_border) == (-6.0, 6.0)


def test_pack_size():
    """The envelope is 32 bytes on the wire."""
    assert len(pack(SAMPLE)) == PARAMETERS_SIZE


def test_pack_request_layout_is_declared_order():
    """SET_PARAMETERS bytes are eight little-endian floats in field order."""
    values = struct.unpack("<8f", pack(SAMPLE, ParameterLayout.REQUEST))
    assert values[0] == pytest.approx(1.5)
    assert values[1] == pytest.approx(42.25)
    assert values[2] == pytest.approx(0.1)
    assert values[3] == pytest.approx(33.3, abs=1e-5)
    assert values[7] == pytest.approx(4.0)


def test_response_layout_swaps_distance_and_speed():
    """GET_PARAMETERS puts max before min for distance and speed only."""
    wire = struct.pack("<8f", 13.0, 0.5, 5.0, 0.25, -60.0, 60.0, -6.0, 6.0)
    p = unpack(wire)
    assert p.max_distance == 13.0
    assert p.min_distance == 0.5
    assert p.max_speed == 5.0
    assert p.min_speed == 0.25
    assert p.min_angle == -60.0
    assert p.max_angle == 60.0
    assert p.left_border == -6.0
    assert p.right_border == 6.0


@pytest.mark.parametrize("layout", list(ParameterLayout))
def test_roundtrip_same_layout(layout):
    """Packing and unpacking with the same layout returns the envelope."""
    _assert_close(unpack(pack(SAMPLE, layout), layout), SAMPLE)


def test_request_bytes_read_as_response_are_swapped():
    """Echoing SET bytes through the response layout exchanges min and max."""
    p = unpack(pack(SAMPLE, ParameterLayout.REQUEST), ParameterLayout.RESPONSE)
    assert p.min_distance == pytest.approx(SAMPLE.max_distance)
    assert p.max_distance == pytest.approx(SAMPLE.min_distance)
    assert p.min_speed == pytest.approx(SAMPLE.max_speed, abs=1e-5)
    assert p.min_angle == pytest.approx(SAMPLE.min_angle)


def test_method_defaults_follow_wire_direction():
    """to_bytes defaults to the request layout, from_bytes to the response layout."""
    assert SAMPLE.to_bytes() == pack(SAMPLE, ParameterLayout.REQUEST)
    response = pack(SAMPLE, ParameterLayout.RESPONSE)
    _assert_close(Parameters.from_bytes(response), SAMPLE)


def test_unpack_wrong_size():
    """Payloads that are not 32 bytes are malformed frames."""
    with pytest.raises(InvalidFrameError):
        unpack(bytes(31))
    with pytest.raises(InvalidFrameError):
        unpack(bytes(33))


def test_to_dict():
    """to_dict exposes every field by name."""
    d = Parameters().to_dict()
    assert set(d) == {
        "min_distance", "max_distance", "min_speed", "max_speed",
        "min_angle", "max_angle", "left_border", "right_border",
    }
