"""One-shot timers with millisecond precision."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import timedelta

from zinxutil.delayfunc import DelayFunc


def unix_milli() -> int:
    """Return the milliseconds elapsed since the Unix epoch."""
    return time.time_ns() // 1_000_000


@dataclass
class Timer:
    """A callback due at ``unix_ts`` milliseconds since the epoch."""

    delay_func: DelayFunc
    unix_ts: int

    def run(self) -> threading.Thread:
        """Fire the callback in a background thread once it is due."""
        thread = threading.Thread(target=self._fire, daemon=True)
        thread.start()
        return thread

    def _fire(self) -> None:
        remaining = self.unix_ts - unix_milli()
        if remaining > 0:
            time.sleep(remaining / 1000)
        self.delay_func.call()


def timer_at(delay_func: DelayFunc, unix_nano: int) -> Timer:
    """Create a timer due at ``unix_nano`` nanoseconds since the epoch."""
    return Timer(delay_func, unix_nano // 1_000_000)


def timer_after(delay_func: DelayFunc, duration: float | timedelta) -> Timer:
    """Create a timer due ``duration`` (seconds or a timedelta) from now."""
    seconds = duration.total_seconds() if isinstance(duration, timedelta) else duration
    return timer_at(delay_func, time.time_ns() + round(seconds * 1_000_000_000))