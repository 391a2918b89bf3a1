"""A scheduler that drives hour, minute and second time wheels."""

from __future__ import annotations

import logging
import queue
import threading
import time
from datetime import timedelta
from types import TracebackType

from zinxutil.delayfunc import DelayFunc
from zinxutil.timer import timer_after, timer_at, unix_milli
from zinxutil.timewheel import (
    HOUR_INTERVAL,
    HOUR_NAME,
    HOUR_SCALES,
    MINUTE_INTERVAL,
    MINUTE_NAME,
    MINUTE_SCALES,
    SECOND_INTERVAL,
    SECOND_NAME,
    SECOND_SCALES,
    TIMERS_MAX_CAP,
    TimeWheel,
)

logger = logging.getLogger(__name__)

MAX_CHAN_BUFF = 2048
MAX_TIME_DELAY = 100  # milliseconds

_ID_MASK = 0xFFFFFFFF
_QUEUE_POLL = 0.1


class TimerScheduler:
    """Owns a chain of time wheels and hands due callbacks to ``trigger_queue``."""

    def __init__(self) -> None:
        second = TimeWheel(SECOND_NAME, SECOND_INTERVAL, SECOND_SCALES, TIMERS_MAX_CAP)
        minute = TimeWheel(MINUTE_NAME, MINUTE_INTERVAL, MINUTE_SCALES, TIMERS_MAX_CAP)
        hour = TimeWheel(HOUR_NAME, HOUR_INTERVAL, HOUR_SCALES, TIMERS_MAX_CAP)
        hour.add_time_wheel(minute)
        minute.add_time_wheel(second)
        self._wheels = (second, minute, hour)
        for wheel in self._wheels:
            wheel.run()
        self._top = hour

        self.id_gen = 0
        self.trigger_queue: queue.Queue[DelayFunc] = queue.Queue(MAX_CHAN_BUFF)
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._poller: threading.Thread | None = None
        self._executor: threading.Thread | None = None

    def _next_id(self) -> int:
        self.id_gen = (self.id_gen + 1) & _ID_MASK
        return self.id_gen

    def create_timer_at(self, delay_func: DelayFunc, unix_nano: int) -> int:
        """Schedule ``delay_func`` at ``unix_nano`` ns since the epoch; return its id."""
        with self._lock:
            tid = self._next_id()
            self._top.add_timer(tid, timer_at(delay_func, unix_nano))
            return tid

    def create_timer_after(
        self, delay_func: DelayFunc, duration: float | timedelta
    ) -> int:
        """Schedule ``delay_func`` after ``duration`` (seconds or timedelta); return its id."""
        with self._lock:
            tid = self._next_id()
            self._top.add_timer(tid, timer_after(delay_func, duration))
            return tid

    def cancel_timer(self, tid: int) -> None:
        """Remove the timer with id ``tid`` from every wheel."""
        with self._lock:
            wheel: TimeWheel | None = self._top
            while wheel is not None:
                wheel.remove_timer(tid)
                wheel = wheel.next_wheel

    def start(self) -> None:
        """Start moving due callbacks onto ``trigger_queue`` in the background."""
        if self._poller is not None and self._poller.is_alive():
            return
        self._poller = threading.Thread(target=self._poll, daemon=True)
        self._poller.start()

    def _poll(self) -> None:
        window = MAX_TIME_DELAY / 1000
        while not self._stop.is_set():
            now = unix_milli()
            for timer in self._top.get_timer_within(window).values():
                if abs(now - timer.unix_ts) > MAX_TIME_DELAY:
                    logger.error(
                        "want call at %d; real call at %d; delay %d",
                        timer.unix_ts,
                        now,
                        now - timer.unix_ts,
                    )
                if not self._enqueue(timer.delay_func):
                    return
            self._stop.wait(MAX_TIME_DELAY / 2 / 1000)

    def _enqueue(self, delay_func: DelayFunc) -> bool:
        while not self._stop.is_set():
            try:
                self.trigger_queue.put(delay_func, timeout=_QUEUE_POLL)
                return True
            except queue.Full:
                continue
        return False

    def _start_executor(self) -> None:
        if self._executor is not None and self._executor.is_alive():
            return
        self._executor = threading.Thread(target=self._execute, daemon=True)
        self._executor.start()

    def _execute(self) -> None:
        while not self._stop.is_set():
            try:
                delay_func = self.trigger_queue.get(timeout=_QUEUE_POLL)
            except queue.Empty:
                continue
            threading.Thread(target=delay_func.call, daemon=True).start()

    def stop(self) -> None:
        """Stop the background threads and the wheels."""
        self._stop.set()
        current = threading.current_thread()
        for thread in (self._poller, self._executor):
            if thread is not None and thread is not current:
                thread.join()
        self._poller = None
        self._executor = None
        for wheel in self._wheels:
            wheel.stop()

    def __enter__(self) -> TimerScheduler:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()


def new_auto_exec_timer_scheduler() -> TimerScheduler:
    """Return a started scheduler that runs each due callback in its own thread."""
    scheduler = TimerScheduler()
    scheduler.start()
    scheduler._start_executor()
    return scheduler