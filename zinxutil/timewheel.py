"""Hierarchical time wheels that hold many timers cheaply."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta

from zinxutil.timer import Timer, unix_milli

logger = logging.getLogger(__name__)

HOUR_NAME = "HOUR"
HOUR_INTERVAL = 60 * 60 * 1000
HOUR_SCALES = 12

MINUTE_NAME = "MINUTE"
MINUTE_INTERVAL = 60 * 1000
MINUTE_SCALES = 60

SECOND_NAME = "SECOND"
SECOND_INTERVAL = 1000
SECOND_SCALES = 60

TIMERS_MAX_CAP = 2048


class TimeWheel:
    """A ring of ``scales`` slots, each ``interval`` milliseconds wide.

    Timers due within one slot are handed down to the next, finer wheel;
    the finest wheel keeps them in its current slot until they are taken.
    """

    def __init__(self, name: str, interval: int, scales: int, max_cap: int) -> None:
        if interval < 1:
            raise ValueError("interval must be at least 1 ms")
        if scales < 1:
            raise ValueError("scales must be at least 1")
        self.name = name
        self.interval = interval
        self.scales = scales
        self.max_cap = max_cap
        self.cur_index = 0
        self.slots: list[dict[int, Timer]] = [{} for _ in range(scales)]
        self.next_wheel: TimeWheel | None = None
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        logger.info("Init timer wheel name = %s is done", name)

    def _add_timer(self, tid: int, timer: Timer, force_next: bool) -> None:
        delay = timer.unix_ts - unix_milli()
        if delay >= self.interval:
            steps = delay // self.interval
            self.slots[(self.cur_index + steps) % self.scales][tid] = timer
        elif self.next_wheel is None:
            if force_next:
                # A slot that has passed is never looked at again, so a due
                # timer is carried into the next slot until it is taken.
                self.slots[(self.cur_index + 1) % self.scales][tid] = timer
            else:
                self.slots[self.cur_index][tid] = timer
        else:
            self.next_wheel.add_timer(tid, timer)

    def add_timer(self, tid: int, timer: Timer) -> None:
        """Place ``timer`` under id ``tid`` in this wheel or a finer one."""
        with self._lock:
            self._add_timer(tid, timer, False)

    def remove_timer(self, tid: int) -> None:
        """Remove the timer with id ``tid`` from every slot of this wheel."""
        with self._lock:
            for slot in self.slots:
                slot.pop(tid, None)

    def add_time_wheel(self, next_wheel: TimeWheel) -> None:
        """Attach the finer wheel that receives timers due within one slot."""
        self.next_wheel = next_wheel
        logger.info("Add timer wheel [%s]'s next [%s]", self.name, next_wheel.name)

    def tick(self) -> None:
        """Advance the wheel by one slot, redistributing the timers it passes."""
        with self._lock:
            for index in (self.cur_index, (self.cur_index + 1) % self.scales):
                timers = self.slots[index]
                self.slots[index] = {}
                for tid, timer in timers.items():
                    self._add_timer(tid, timer, True)
            self.cur_index = (self.cur_index + 1) % self.scales

    def run(self) -> None:
        """Turn the wheel one slot every ``interval`` ms in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop = threading.Event()
        stop = self._stop
        self._thread = threading.Thread(target=self._loop, args=(stop,), daemon=True)
        self._thread.start()
        logger.info("timer wheel name = %s is running", self.name)

    def _loop(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval / 1000):
            self.tick()

    def stop(self) -> None:
        """Stop the background thread started by :meth:`run`."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def get_timer_within(self, duration: float | timedelta) -> dict[int, Timer]:
        """Take from the finest wheel's current slot the timers due within ``duration``.

        ``duration`` is in seconds or a timedelta. Taken timers are removed.
        """
        seconds = duration.total_seconds() if isinstance(duration, timedelta) else duration
        window = int(seconds * 1000)
        leaf = self
        while leaf.next_wheel is not None:
            leaf = leaf.next_wheel
        with leaf._lock:
            now = unix_milli()
            slot = leaf.slots[leaf.cur_index]
            due = {tid: t for tid, t in slot.items() if t.unix_ts - now < window}
            for tid in due:
                del slot[tid]
            return due