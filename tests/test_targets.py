"""Tests for target report decoding."""

import pytest

from smart_road_radar_mcp.models.targets import (
    TargetProtocol,
    TargetRecord,
    decode_targets,
    encode_targets,
)


def _record(target_id: int, distance: int, speed: int, angle: int, snr: int) -> bytes:
    return bytes([target_id]) + b"".join(
        v.to_bytes(2, "little") for v in (distance, speed, angle, snr)
    )


def test_zero_detections():
    """A one-byte payload is an empty report, not an error."""
    assert decode_targets(b"\x00") == []
    assert decode_targets(b"") == []


def test_single_record_scaling():
    """Fields are little-endian u16 in hundredths."""
    payload = _record(7, 1234, 250, 4500, 1800)
    targets = decode_targets(payload)
    assert len(targets) == 1
    t = targets[0]
    assert t.id == 7
    assert t.distance == pytest.approx(12.34)
    assert t.speed == pytest.approx(2.5)
    assert t.angle == pytest.approx(45.0)
    assert t.snr == pytest.approx(18.0)


def test_high_byte_matters():
    """The second byte of a field is the high byte, not an addend."""
    t = decode_targets(_record(1, 0x0102, 0, 0, 0))[0]
    assert t.distance == pytest.approx(2.58)


def test_multiple_records_in_order():
    """Records are returned in wire order."""
    payload = _record(1, 100, 0, 0, 0) + _record(2, 200, 0, 0, 0) + _record(3, 300, 0, 0, 0)
    targets = decode_targets(payload)
    assert [t.id for t in targets] == [1, 2, 3]
    assert [round(t.distance, 2) for t in targets] == [1.0, 2.0, 3.0]


def test_capacity_truncates():
    """Never more records than the caller asked for."""
    payload = b"".join(_record(i, i, 0, 0, 0) for i in range(1, 6))
    assert len(decode_targets(payload, capacity=2)) == 2
    assert decode_targets(payload, capacity=0) == []


def test_negative_capacity():
    """Negative capacity is a caller error."""
    with pytest.raises(ValueError):
        decode_targets(_record(1, 1, 1, 1, 1), capacity=-1)


def test_trailing_partial_record_ignored():
    """Bytes that do not fill a whole record are dropped."""
    payload = _record(1, 100, 0, 0, 0) + b"\x02\x01\x00"
    assert len(decode_targets(payload)) == 1


def test_alternate_record_size_and_offset():
    """Record framing follows the TargetProtocol given."""
    protocol = TargetProtocol(record_size=10, payload_offset=3)
    payload = b"\xEE\xEE\xEE" + _record(9, 500, 0, 0, 0) + b"\x00"
    targets = decode_targets(payload, protocol=protocol)
    assert len(targets) == 1
    assert targets[0].id == 9
    assert targets[0].distance == pytest.approx(5.0)


def test_protocol_rejects_short_records():
    """Records must hold the id and four fields."""
    with pytest.raises(ValueError):
        TargetProtocol(record_size=8)


def test_encode_matches_wire_layout():
    """encode_targets writes the same bytes decode_targets reads."""
    target = TargetRecord(id=4, distance=12.34, speed=2.5, angle=45.0, snr=18.0)
    assert encode_targets([target]) == _record(4, 1234, 250, 4500, 1800)


def test_target_to_dict():
    """to_dict rounds to the wire resolution."""
    d = TargetRecord(id=1, distance=1.23456, speed=0, angle=0, snr=0).to_dict()
    assert d["distance"] == 1.23
