"""Simulated radar that speaks the wire protocol.

``RadarSimulator`` is a ``ByteChannel``: request frames written to it are
decoded and answered exactly as the device would answer them, and while
data transmission is enabled it produces target reports with random
targets inside the configured envelope. Pointing a ``RadarClient`` at a
simulator gives a fully working radar without hardware, which is what
the server's ``simulate`` mode and the test suite use.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from collections import deque

from .errors import ChannelError, ChannelTimeout
from .models.parameters import Parameters, ParameterLayout
from .models.targets import MAX_TARGETS, TargetRecord, TargetProtocol, TARGET_PROTOCOL, encode_targets
from .protocol.commands import Command, DataFrequency, Status, ZeroReport
from .protocol.framing import build_frame, parse_frame
from .transport.serial_connection import ByteChannel

logger = logging.getLogger(__name__)

DEFAULT_VERSION = (255, 255, 255)

# Largest value a target field can carry on the wire (unsigned, hundredths).
_MAX_FIELD_VALUE = 0xFFFF / 100


class RadarSimulator(ByteChannel):
    """In-memory radar responder.

    Args:
        version: Firmware version reported for REQUEST_VERSION.
        seed: Seed for the target generator, for reproducible streams.
        realtime: Sleep between streamed reports according to the
            configured report rate. Tests leave this off.
        read_timeout: How long ``read_exact`` waits for data before
            raising ``ChannelTimeout`` when nothing is queued.
    """

    def __init__(
        self,
        version: tuple[int, int, int] = DEFAULT_VERSION,
        seed: int | None = None,
        realtime: bool = False,
        read_timeout: float = 0.0,
        target_protocol: TargetProtocol = TARGET_PROTOCOL,
    ) -> None:
        self.version = version
        self.parameters = Parameters()
        self.target_number = MAX_TARGETS
        self.transmitting = False
        self.zero_report = True
        self.frequency = DataFrequency.HZ_1
        self.fail_commands: set[int] = set()
        self.requests: list[int] = []
        self._rng = random.Random(seed)
        self._realtime = realtime
        self._read_timeout = read_timeout
        self._protocol = target_protocol
        self._outbound: deque[int] = deque()
        self._lock = threading.Condition()
        self._closed = False

    # ─── ByteChannel ─────────────────────────────────────────────────

    def write_exact(self, data: bytes) -> int:
        if self._closed:
            raise ChannelError("Simulator is closed")
        frame = parse_frame(data)
        if frame is None or not frame.valid:
            logger.debug("Simulator ignoring malformed request %s", data.hex(" "))
            return len(data)

        self.requests.append(frame.command)
        response = self._handle(frame.command, frame.payload)
        if response is not None:
            self.queue_frame(*response)
        return len(data)

    def read_exact(self, size: int) -> bytes:
        if self._closed:
            raise ChannelError("Simulator is closed")
        with self._lock:
            if len(self._outbound) < size:
                self._fill(size)
            if len(self._outbound) < size:
                raise ChannelTimeout("Simulator has no data queued")
            return bytes(self._outbound.popleft() for _ in range(size))

    def unread(self, data: bytes) -> None:
        with self._lock:
            self._outbound.extendleft(reversed(data))

    def close(self) -> None:
        self._closed = True

    # ─── helpers ─────────────────────────────────────────────────────

    def queue_bytes(self, data: bytes) -> None:
        """Append raw bytes to the outbound stream (noise, partial frames)."""
        with self._lock:
            self._outbound.extend(data)
            self._lock.notify_all()

    def queue_frame(self, command: int, payload: bytes = b"") -> None:
        """Append a well-formed frame to the outbound stream."""
        self.queue_bytes(build_frame(command, payload))

    def generate_targets(self) -> list[TargetRecord]:
        """Random targets inside the current envelope."""
        count = self._rng.randint(0, self.target_number)
        p = self.parameters
        return [
            TargetRecord(
                id=self._rng.randint(1, MAX_TARGETS),
                distance=self._uniform(p.min_distance, p.max_distance),
                speed=self._uniform(p.min_speed, p.max_speed),
                angle=self._uniform(p.min_angle, p.max_angle),
                snr=0.0,
            )
            for _ in range(count)
        ]

    def _uniform(self, low: float, high: float) -> float:
        # Only the non-negative part of the envelope is representable on the wire.
        low = min(max(low, 0.0), _MAX_FIELD_VALUE)
        high = min(max(high, low), _MAX_FIELD_VALUE)
        return round(self._rng.uniform(low, high), 2)

    def _fill(self, size: int) -> None:
        deadline = time.monotonic() + self._read_timeout
        while len(self._outbound) < size:
            if self.transmitting:
                if self._realtime:
                    self._lock.wait(1.0 / self.frequency.reports_per_second)
                self._queue_report()
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            self._lock.wait(remaining)

    def _queue_report(self) -> None:
        targets = self.generate_targets()
        if not targets:
            if not self.zero_report:
                return
            self._outbound.extend(build_frame(Command.READ_TARGET_DATA))
            return
        payload = encode_targets(targets, self._protocol)
        self._outbound.extend(build_frame(Command.READ_TARGET_DATA, payload))

    def _status(self, ok: bool) -> tuple[int, bytes]:
        status = Status.SUCCESS if ok else Status.FAILURE
        return Command.READ_STATUS, bytes([status])

    def _handle(self, command: int, payload: bytes) -> tuple[int, bytes] | None:
        if command in self.fail_commands:
            return self._status(False)

        if command == Command.REQUEST_VERSION:
            return Command.READ_VERSION, bytes(self.version)

        if command == Command.GET_PARAMETERS:
            return (
                Command.READ_PARAMETERS,
                self.parameters.to_bytes(ParameterLayout.RESPONSE),
            )

        if command == Command.SET_PARAMETERS:
            if len(payload) != 32:
                return self._status(False)
            self.parameters = Parameters.from_bytes(payload, ParameterLayout.REQUEST)
            return self._status(True)

        if command == Command.SET_TARGET_NUM:
            if len(payload) != 1 or not 1 <= payload[0] <= MAX_TARGETS:
                return self._status(False)
            self.target_number = payload[0]
            return self._status(True)

        if command == Command.ENABLE_TRANSMIT:
            self.transmitting = True
            return self._status(True)

        if command == Command.DISABLE_TRANSMIT:
            self.transmitting = False
            return self._status(True)

        if command == Command.SET_DATA_FREQ:
            try:
                self.frequency = DataFrequency(payload[0] if payload else -1)
            except ValueError:
                return self._status(False)
            return self._status(True)

        if command == Command.SET_ZERO_REPORT:
            if len(payload) != 1 or payload[0] not in (ZeroReport.REPORT, ZeroReport.NOT_REPORT):
                return self._status(False)
            self.zero_report = payload[0] == ZeroReport.REPORT
            return self._status(True)

        logger.debug("Simulator has no answer for command 0x%02X", command)
        return None
