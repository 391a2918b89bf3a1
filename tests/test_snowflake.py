import time

import pytest

from zinxutil.snowflake import ClockMovedBackwardsError, IDWorker

BASE_MS = 1_700_000_000_000


def _fields(value):
    return value >> 22, (value >> 12) & 0x3FF, value & 0xFFF


class FakeClock:
    def __init__(self, millis):
        self.millis = list(millis)
        self.calls = 0

    def __call__(self):
        index = min(self.calls, len(self.millis) - 1)
        self.calls += 1
        return self.millis[index] * 1_000_000


def test_snowflake_uuid_positive_and_contains_worker():
    worker = IDWorker(1)
    value = worker.next_id()
    assert value > 0
    assert _fields(value)[1] == 1


@pytest.mark.parametrize("worker_id", [-1, 1024])
def test_invalid_worker_id(worker_id):
    with pytest.raises(ValueError):
        IDWorker(worker_id)


def test_max_worker_id_accepted():
    assert _fields(IDWorker(1023).next_id())[1] == 1023


def test_ids_increase():
    worker = IDWorker(7)
    ids = [worker.next_id() for _ in range(5000)]
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


def test_fields_with_fixed_clock(monkeypatch):
    monkeypatch.setattr(time, "time_ns", FakeClock([BASE_MS]))
    worker = IDWorker(5)
    first = worker.next_id()
    second = worker.next_id()
    assert _fields(first) == (BASE_MS, 5, 0)
    assert _fields(second) == (BASE_MS, 5, 1)


def test_sequence_resets_on_new_millisecond(monkeypatch):
    monkeypatch.setattr(time, "time_ns", FakeClock([BASE_MS, BASE_MS, BASE_MS + 1]))
    worker = IDWorker(2)
    worker.next_id()
    assert _fields(worker.next_id())[2] == 1
    assert _fields(worker.next_id()) == (BASE_MS + 1, 2, 0)


def test_sequence_overflow_waits_for_next_millisecond(monkeypatch):
    clock = FakeClock([BASE_MS] * 4097 + [BASE_MS + 1])
    monkeypatch.setattr(time, "time_ns", clock)
    worker = IDWorker(3)
    ids = [worker.next_id() for _ in range(4096)]
    assert _fields(ids[-1]) == (BASE_MS, 3, 4095)
    overflow = worker.next_id()
    assert _fields(overflow) == (BASE_MS + 1, 3, 0)
    assert overflow > ids[-1]


def test_clock_moved_backwards(monkeypatch):
    monkeypatch.setattr(time, "time_ns", FakeClock([BASE_MS, BASE_MS - 1]))
    worker = IDWorker(1)
    worker.next_id()
    with pytest.raises(ClockMovedBackwardsError):
        worker.next_id()