"""Background reader for streamed radar frames.

While data transmission is enabled the radar pushes target reports on
its own. ``StreamReader`` decodes them on a daemon thread and dispatches
by command word. It shares the channel with ``RadarClient`` through the
client's ``ChannelArbiter``, reading one frame at a time and stepping
aside whenever a command is waiting.

Handlers run on the reader thread (or on the commanding thread for
frames that arrive mid-transaction) and must not issue radar commands
themselves. An exception from a handler is logged and counted in
``handler_errors``; reading continues.

Usage::

    reader = radar.start_streaming(on_targets=lambda targets: ...)
    ...
    radar.stop_streaming()
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable

from .errors import ChannelError, ChannelTimeout, InvalidFrameError
from .models.targets import MAX_TARGETS, TargetRecord
from .protocol.commands import Command
from .protocol.framing import Frame, read_frame
from .protocol.parser import (
    FirmwareVersion,
    StatusResponse,
    parse_status,
    parse_target_data,
    parse_version,
)

logger = logging.getLogger(__name__)

# How long the reader waits for the channel before rechecking for stop.
POLL_INTERVAL = 0.25


class StreamState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


def _log_version(version: FirmwareVersion) -> None:
    logger.info("Firmware version %s", version)


def _log_status(status: StatusResponse) -> None:
    if status.success:
        logger.info("Device status OK")
    else:
        logger.info("Device status ERROR (0x%02X)", status.status)


def _log_targets(targets: list[TargetRecord]) -> None:
    if not targets:
        logger.debug("Zero targets reported")
        return
    for target in targets:
        logger.info(
            "Target %2d | %6.2f m | %6.2f m/s | %6.2f deg | snr %.2f",
            target.id, target.distance, target.speed, target.angle, target.snr,
        )


class StreamReader:
    """Decodes frames continuously and dispatches them to handlers."""

    def __init__(
        self,
        client,
        on_version: Callable[[FirmwareVersion], None] | None = None,
        on_status: Callable[[StatusResponse], None] | None = None,
        on_targets: Callable[[list[TargetRecord]], None] | None = None,
        capacity: int = MAX_TARGETS,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self._client = client
        self._handlers: dict[int, Callable] = {
            Command.READ_VERSION: on_version or _log_version,
            Command.READ_STATUS: on_status or _log_status,
            Command.READ_TARGET_DATA: on_targets or _log_targets,
        }
        self._capacity = capacity
        self._poll_interval = poll_interval
        self._state = StreamState.IDLE
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._loop, name="radar-stream", daemon=True
        )
        self._lock = threading.Lock()
        self.latest_version: FirmwareVersion | None = None
        self.latest_status: StatusResponse | None = None
        self.latest_targets: list[TargetRecord] = []
        self.frames_received = 0
        self.frames_discarded = 0
        self.handler_errors = 0
        self.error: ChannelError | None = None

    # ───────────────────────── public API
    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is StreamState.RUNNING and self._thread.is_alive()

    def start(self) -> None:
        """Spawn the reader thread. A reader can only be started once."""
        if self._state is not StreamState.IDLE:
            raise RuntimeError(f"Cannot start a {self._state.value} stream reader")
        self._state = StreamState.RUNNING
        self._client.set_unsolicited_handler(self.dispatch)
        self._thread.start()
        logger.info("Stream reader started")

    def stop(self, timeout: float | None = None) -> None:
        """Stop the loop and wait for the thread to exit."""
        if self._state is StreamState.IDLE:
            self._state = StreamState.STOPPED
            return
        self._state = StreamState.STOPPED
        self._stop.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._client.set_unsolicited_handler(None)
        logger.info("Stream reader stopped")

    def snapshot(self) -> dict:
        """Latest decoded values, for polling callers."""
        with self._lock:
            return {
                "state": self._state.value,
                "version": str(self.latest_version) if self.latest_version else None,
                "status_ok": self.latest_status.success if self.latest_status else None,
                "targets": [t.to_dict() for t in self.latest_targets],
                "frames_received": self.frames_received,
                "frames_discarded": self.frames_discarded,
                "handler_errors": self.handler_errors,
                "error": str(self.error) if self.error else None,
            }

    def dispatch(self, frame: Frame) -> None:
        """Decode a valid frame and pass it to the handler for its command."""
        handler = self._handlers.get(frame.command)
        if handler is None:
            logger.debug("No handler for frame 0x%02X", frame.command)
            return

        try:
            if frame.command == Command.READ_VERSION:
                value = parse_version(frame)
                with self._lock:
                    self.latest_version = value
            elif frame.command == Command.READ_STATUS:
                value = parse_status(frame)
                with self._lock:
                    self.latest_status = value
            else:
                value = parse_target_data(
                    frame, self._capacity, self._client.target_protocol
                )
                with self._lock:
                    self.latest_targets = value
        except InvalidFrameError as e:
            with self._lock:
                self.frames_discarded += 1
            logger.debug("Discarded streamed frame: %s", e)
            return

        with self._lock:
            self.frames_received += 1
        try:
            handler(value)
        except Exception:
            with self._lock:
                self.handler_errors += 1
            logger.exception("Handler for frame 0x%02X failed", frame.command)

    # ───────────────────────── background reader thread
    def _loop(self) -> None:
        arbiter = self._client.arbiter
        channel = self._client.channel
        max_payload = self._client.target_protocol.max_payload
        while not self._stop.is_set():
            with arbiter.stream_read(timeout=self._poll_interval) as acquired:
                if not acquired:
                    continue
                try:
                    frame = read_frame(channel, max_payload)
                except ChannelTimeout:
                    continue
                except ChannelError as e:
                    logger.error("Stream reader stopping on channel error: %s", e)
                    self.error = e
                    self._state = StreamState.STOPPED
                    return

            if not frame.valid:
                with self._lock:
                    self.frames_discarded += 1
                logger.debug("Discarded invalid frame %r", frame)
                continue
            self.dispatch(frame)
