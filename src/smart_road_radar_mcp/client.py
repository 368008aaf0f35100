"""Command/response client for the radar.

Each command writes one request frame and then reads frames until the
matching response arrives or the attempt budget runs out. The device
may be streaming target reports at the same time, so frames of other
kinds are expected while waiting; they are handed to the unsolicited
frame handler (normally the stream reader) rather than dropped.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .errors import ChannelTimeout, CommandTimeout, DeviceFailure, InvalidFrameError
from .models.parameters import Parameters
from .models.targets import MAX_TARGETS, TargetProtocol, TargetRecord, TARGET_PROTOCOL
from .protocol.commands import (
    Command,
    DataFrequency,
    RESPONSE_FOR,
    STATUS_COMMANDS,
    build_command,
    build_disable_transmit,
    build_enable_transmit,
    build_get_parameters,
    build_request_version,
    build_set_data_frequency,
    build_set_parameters,
    build_set_target_number,
    build_set_zero_report,
)
from .protocol.framing import Frame, read_frame
from .protocol.parser import (
    FirmwareVersion,
    parse_parameters,
    parse_status,
    parse_target_data,
    parse_version,
)
from .transport.arbiter import ChannelArbiter

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 10


class RadarClient:
    """Talks to one radar over a ``ByteChannel``.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        conn.open()
        radar = RadarClient(conn)
        print(radar.get_firmware_version())
        radar.enable_data_transmit()
        targets = radar.get_target_data(capacity=10)
    """

    def __init__(
        self,
        channel,
        attempts: int = DEFAULT_ATTEMPTS,
        target_protocol: TargetProtocol = TARGET_PROTOCOL,
    ) -> None:
        if attempts < 1:
            raise ValueError(f"Attempt budget must be >= 1, got {attempts}")
        self._channel = channel
        self._attempts = attempts
        self._target_protocol = target_protocol
        self._arbiter = ChannelArbiter()
        self._unsolicited: Callable[[Frame], None] | None = None
        self._stream = None

    @property
    def channel(self):
        return self._channel

    @property
    def arbiter(self) -> ChannelArbiter:
        return self._arbiter

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def target_protocol(self) -> TargetProtocol:
        return self._target_protocol

    @property
    def stream(self):
        """The running stream reader, if any."""
        return self._stream

    def set_unsolicited_handler(self, handler: Callable[[Frame], None] | None) -> None:
        """Register a callback for valid frames that arrive mid-transaction."""
        self._unsolicited = handler

    # ─── transaction engine ──────────────────────────────────────────

    def _await_response(
        self,
        command: int,
        expected: int,
        parser: Callable[[Frame], Any] | None,
        attempts: int,
    ) -> Any:
        max_payload = self._target_protocol.max_payload
        for attempt in range(1, attempts + 1):
            try:
                frame = read_frame(self._channel, max_payload)
            except ChannelTimeout:
                logger.debug(
                    "Attempt %d/%d for 0x%02X: read timed out", attempt, attempts, command
                )
                continue

            if not frame.valid:
                logger.debug(
                    "Attempt %d/%d for 0x%02X: discarded invalid frame",
                    attempt, attempts, command,
                )
                continue

            if frame.command != expected:
                if self._unsolicited is not None:
                    self._unsolicited(frame)
                continue

            if parser is None:
                return frame
            try:
                return parser(frame)
            except InvalidFrameError as e:
                logger.debug(
                    "Attempt %d/%d for 0x%02X: %s", attempt, attempts, command, e
                )

        raise CommandTimeout(command, attempts)

    def send_command(
        self,
        command: Command | int,
        payload: bytes = b"",
        parser: Callable[[Frame], Any] | None = None,
        attempts: int | None = None,
        expected: int | None = None,
    ) -> Any:
        """Send a request and wait for its correlated response.

        Commands answered with READ_STATUS are checked for success when no
        parser is given.

        Args:
            command: Request command word.
            payload: Request payload.
            parser: Applied to the matching frame; an ``InvalidFrameError``
                from it discards the frame and costs one attempt.
            attempts: Override for the client's attempt budget.
            expected: Response command word; defaults to ``RESPONSE_FOR``.

        Returns:
            The parser's result, a ``StatusResponse`` for status commands,
            or the matching ``Frame`` otherwise.

        Raises:
            CommandTimeout: No acceptable response within the budget.
            DeviceFailure: A status command was answered with a failure.
            ChannelError: The transport failed (not retried).
        """
        command = Command(command)
        return self._request(
            command, build_command(command, payload), parser, attempts, expected
        )

    def _request(
        self,
        command: Command,
        request: bytes,
        parser: Callable[[Frame], Any] | None = None,
        attempts: int | None = None,
        expected: int | None = None,
    ) -> Any:
        if expected is None:
            expected = RESPONSE_FOR[command]
        budget = attempts if attempts is not None else self._attempts
        check_status = (
            parser is None
            and command in STATUS_COMMANDS
            and expected == Command.READ_STATUS
        )
        if check_status:
            parser = parse_status

        with self._arbiter.transaction():
            self._channel.write_exact(request)
            response = self._await_response(command, expected, parser, budget)

        if check_status and not response.success:
            logger.warning(
                "Device rejected 0x%02X with status 0x%02X", command, response.status
            )
            raise DeviceFailure(command, response.status)
        return response

    # ─── device commands ─────────────────────────────────────────────

    def get_firmware_version(self) -> FirmwareVersion:
        """Query the firmware version."""
        return self._request(
            Command.REQUEST_VERSION, build_request_version(), parse_version
        )

    def set_parameters(self, parameters: Parameters) -> None:
        """Upload a detection envelope."""
        self._request(Command.SET_PARAMETERS, build_set_parameters(parameters))

    def get_parameters(self) -> Parameters:
        """Read the detection envelope back from the device."""
        return self._request(
            Command.GET_PARAMETERS, build_get_parameters(), parse_parameters
        )

    def set_target_number(self, number: int) -> None:
        """Configure the target number (count or max index; see ``TARGET_NUMBER_MEANING``)."""
        self._request(Command.SET_TARGET_NUM, build_set_target_number(number))

    def get_target_data(self, capacity: int = MAX_TARGETS) -> list[TargetRecord]:
        """Wait for the next target report.

        No request is sent: reports arrive while transmission is enabled.
        A zero-detection report returns an empty list.
        """
        if capacity < 0:
            raise ValueError(f"Capacity must be >= 0, got {capacity}")

        def parse(frame: Frame) -> list[TargetRecord]:
            return parse_target_data(frame, capacity, self._target_protocol)

        with self._arbiter.transaction():
            return self._await_response(
                Command.READ_TARGET_DATA, Command.READ_TARGET_DATA, parse, self._attempts
            )

    def enable_data_transmit(self) -> None:
        """Start continuous target reports."""
        self._request(Command.ENABLE_TRANSMIT, build_enable_transmit())

    def disable_data_transmit(self) -> None:
        """Stop continuous target reports."""
        self._request(Command.DISABLE_TRANSMIT, build_disable_transmit())

    def set_data_transmit_frequency(self, code: DataFrequency | int) -> None:
        """Set the report rate using a ``DataFrequency`` code."""
        self._request(Command.SET_DATA_FREQ, build_set_data_frequency(code))

    def set_zero_data_reporting(self, enabled: bool) -> None:
        """Choose whether empty target reports are sent."""
        self._request(Command.SET_ZERO_REPORT, build_set_zero_report(enabled))

    # ─── streaming ───────────────────────────────────────────────────

    def start_streaming(self, **handlers):
        """Start a background stream reader on this client's channel.

        Keyword arguments are passed to ``StreamReader`` (``on_version``,
        ``on_status``, ``on_targets``, ``capacity``, ...).

        Returns:
            The running ``StreamReader``.
        """
        from .stream import StreamReader

        if self._stream is not None and self._stream.running:
            raise RuntimeError("Streaming already started")

        self._stream = StreamReader(self, **handlers)
        self._stream.start()
        return self._stream

    def stop_streaming(self) -> None:
        """Stop the background stream reader, if one is running."""
        if self._stream is None:
            return
        self._stream.stop()
        self._stream = None
