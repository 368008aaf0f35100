"""Exclusive access to the half-duplex channel.

A command transaction (request write plus response read) must own the
channel from start to finish, and the streaming reader must never read
while a transaction is waiting for its answer. Commands take priority:
once one is waiting, the reader does not get the channel back until the
queue of commands has drained.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class ChannelArbiter:
    """Condition-variable lock over a single channel."""

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._busy = False
        self._pending_commands = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Hold the channel for one command and its response."""
        with self._condition:
            self._pending_commands += 1
            try:
                self._condition.wait_for(lambda: not self._busy)
            finally:
                self._pending_commands -= 1
            self._busy = True
        try:
            yield
        finally:
            self._release()

    @contextmanager
    def stream_read(self, timeout: float | None = None) -> Iterator[bool]:
        """Hold the channel for a single streamed frame.

        Yields True if the channel was acquired, False if ``timeout``
        expired first (the caller should skip this iteration).
        """
        with self._condition:
            acquired = self._condition.wait_for(
                lambda: not self._busy and self._pending_commands == 0,
                timeout=timeout,
            )
            if acquired:
                self._busy = True
        try:
            yield acquired
        finally:
            if acquired:
                self._release()

    def _release(self) -> None:
        with self._condition:
            self._busy = False
            self._condition.notify_all()
