"""Exception hierarchy for the radar client."""

from __future__ import annotations


class RadarError(Exception):
    """Base class for every error raised by this package."""


class InvalidFrameError(RadarError):
    """A frame failed header/checksum validation or carried a malformed payload.

    Never fatal: readers discard the frame and keep scanning.
    """


class CommandTimeout(RadarError):
    """No matching valid response arrived within the attempt budget."""

    def __init__(self, command: int, attempts: int) -> None:
        self.command = command
        self.attempts = attempts
        super().__init__(
            f"No response to command 0x{command:02X} after {attempts} attempts"
        )


class DeviceFailure(RadarError):
    """The device answered, but reported that the command failed."""

    def __init__(self, command: int, status: int) -> None:
        self.command = command
        self.status = status
        super().__init__(
            f"Device rejected command 0x{command:02X} (status 0x{status:02X})"
        )


class ChannelError(RadarError):
    """The underlying transport failed; the in-flight operation is abandoned."""


class ChannelTimeout(RadarError):
    """A read did not complete within the port timeout.

    ``data`` holds whatever bytes did arrive before the timeout.
    """

    def __init__(self, message: str = "", data: bytes = b"") -> None:
        self.data = data
        super().__init__(message)
