"""Command words and request builders.

Requests and responses use distinct command words; ``RESPONSE_FOR`` maps
each request to the response the device sends back.
"""

from __future__ import annotations

from enum import Enum, IntEnum

from ..models.parameters import Parameters, ParameterLayout
from ..models.targets import MAX_TARGETS
from .framing import build_frame


class Command(IntEnum):
    """Command words."""

    REQUEST_VERSION = 0x10
    READ_VERSION = 0x11
    SET_TARGET_NUM = 0x12
    SET_DATA_FREQ = 0x18
    SET_ZERO_REPORT = 0x19
    ENABLE_TRANSMIT = 0x20
    DISABLE_TRANSMIT = 0x21
    SET_PARAMETERS = 0x36
    GET_PARAMETERS = 0x37
    READ_PARAMETERS = 0x38
    READ_TARGET_DATA = 0x42
    READ_STATUS = 0x50


class Status(IntEnum):
    """First payload byte of a READ_STATUS response."""

    SUCCESS = 0x0A
    FAILURE = 0xFF


class ZeroReport(IntEnum):
    """SET_ZERO_REPORT payload: whether empty target reports are sent."""

    REPORT = 0x0A
    NOT_REPORT = 0xFF


class DataFrequency(IntEnum):
    """SET_DATA_FREQ payload codes."""

    HZ_1 = 0x01
    HZ_2 = 0x02
    HZ_3 = 0x03
    HZ_4 = 0x04
    HZ_5 = 0x05
    HZ_10 = 0x0A
    HZ_15 = 0x0F
    HZ_20 = 0x14

    @property
    def reports_per_second(self) -> int:
        return REPORTS_PER_SECOND[self]

    @classmethod
    def from_rate(cls, reports_per_second: int) -> DataFrequency:
        for code, rate in REPORTS_PER_SECOND.items():
            if rate == reports_per_second:
                return code
        raise ValueError(
            f"Unsupported report rate {reports_per_second}. "
            f"Valid: {sorted(REPORTS_PER_SECOND.values())}"
        )


REPORTS_PER_SECOND: dict[DataFrequency, int] = {
    DataFrequency.HZ_1: 1,
    DataFrequency.HZ_2: 2,
    DataFrequency.HZ_3: 3,
    DataFrequency.HZ_4: 4,
    DataFrequency.HZ_5: 5,
    DataFrequency.HZ_10: 10,
    DataFrequency.HZ_15: 15,
    DataFrequency.HZ_20: 20,
}


class TargetNumberMeaning(Enum):
    """What the SET_TARGET_NUM value configures on the device."""

    COUNT = "count"
    MAX_INDEX = "max_index"
    UNRESOLVED = "unresolved"


# Vendor documentation does not say whether the value is the number of
# targets to track or the highest target index reported.
TARGET_NUMBER_MEANING = TargetNumberMeaning.UNRESOLVED


RESPONSE_FOR: dict[Command, Command] = {
    Command.REQUEST_VERSION: Command.READ_VERSION,
    Command.SET_PARAMETERS: Command.READ_STATUS,
    Command.GET_PARAMETERS: Command.READ_PARAMETERS,
    Command.SET_TARGET_NUM: Command.READ_STATUS,
    Command.ENABLE_TRANSMIT: Command.READ_STATUS,
    Command.DISABLE_TRANSMIT: Command.READ_STATUS,
    Command.SET_DATA_FREQ: Command.READ_STATUS,
    Command.SET_ZERO_REPORT: Command.READ_STATUS,
}

STATUS_COMMANDS = frozenset(
    command for command, response in RESPONSE_FOR.items()
    if response == Command.READ_STATUS
)


def build_command(command: Command, payload: bytes = b"") -> bytes:
    """Build a request frame for a command."""
    return build_frame(command.value, payload)


def build_request_version() -> bytes:
    """Build a REQUEST_VERSION command."""
    return build_command(Command.REQUEST_VERSION)


def build_set_parameters(parameters: Parameters) -> bytes:
    """Build a SET_PARAMETERS command carrying the 32-byte envelope."""
    return build_command(
        Command.SET_PARAMETERS, parameters.to_bytes(ParameterLayout.REQUEST)
    )


def build_get_parameters() -> bytes:
    """Build a GET_PARAMETERS command."""
    return build_command(Command.GET_PARAMETERS)


def build_set_target_number(number: int) -> bytes:
    """Build a SET_TARGET_NUM command.

    Args:
        number: 1-35. See ``TARGET_NUMBER_MEANING``.
    """
    if not 1 <= number <= MAX_TARGETS:
        raise ValueError(f"Target number must be 1-{MAX_TARGETS}, got {number}")
    return build_command(Command.SET_TARGET_NUM, bytes([number]))


def build_enable_transmit() -> bytes:
    """Build an ENABLE_TRANSMIT command."""
    return build_command(Command.ENABLE_TRANSMIT)


def build_disable_transmit() -> bytes:
    """Build a DISABLE_TRANSMIT command."""
    return build_command(Command.DISABLE_TRANSMIT)


def build_set_data_frequency(code: int) -> bytes:
    """Build a SET_DATA_FREQ command.

    Args:
        code: One of the ``DataFrequency`` codes.
    """
    try:
        frequency = DataFrequency(code)
    except ValueError:
        raise ValueError(
            f"Unknown frequency code 0x{code:02X}. "
            f"Valid: {[f'0x{c.value:02X}' for c in DataFrequency]}"
        ) from None
    return build_command(Command.SET_DATA_FREQ, bytes([frequency]))


def build_set_zero_report(enabled: bool) -> bytes:
    """Build a SET_ZERO_REPORT command."""
    state = ZeroReport.REPORT if enabled else ZeroReport.NOT_REPORT
    return build_command(Command.SET_ZERO_REPORT, bytes([state]))
