"""Snowflake-style 64-bit unique identifiers."""

from __future__ import annotations

import threading
import time

WORKER_BITS = 10
MAX_WORKER = -1 ^ (-1 << WORKER_BITS)
SEQUENCE_BITS = 12
SEQUENCE_MASK = -1 ^ (-1 << SEQUENCE_BITS)
WORKER_SHIFT = SEQUENCE_BITS
TIMESTAMP_SHIFT = SEQUENCE_BITS + WORKER_BITS


class ClockMovedBackwardsError(RuntimeError):
    """Raised when the system clock is earlier than the last issued id's time."""


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


class IDWorker:
    """Issues ids made of a millisecond timestamp, a worker id and a sequence."""

    def __init__(self, worker_id: int) -> None:
        if worker_id < 0 or worker_id > MAX_WORKER:
            raise ValueError(
                f"worker ID can't be greater than {MAX_WORKER} or less than 0"
            )
        self.worker_id = worker_id
        self._sequence = 0
        self._last_timestamp = -1
        self._lock = threading.Lock()

    def next_id(self) -> int:
        """Return the next id; raise ClockMovedBackwardsError if time went back."""
        with self._lock:
            timestamp = _now_millis()
            if timestamp < self._last_timestamp:
                raise ClockMovedBackwardsError("clock moved backwards")

            if timestamp == self._last_timestamp:
                self._sequence = (self._sequence + 1) & SEQUENCE_MASK
                if self._sequence == 0:
                    while timestamp <= self._last_timestamp:
                        timestamp = _now_millis()
            else:
                self._sequence = 0

            self._last_timestamp = timestamp
            return (
                (timestamp << TIMESTAMP_SHIFT)
                | (self.worker_id << WORKER_SHIFT)
                | self._sequence
            )