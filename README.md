# zinxutil

Small building blocks for long-running services. The package uses only the standard library.

- **`zinxutil.hashing`**: 32-bit FNV-1 hashing with `Fnv32Hash` and `default_hash()`.
- **`zinxutil.shard_map`**: `ShardLockMap` is a thread-safe map with string keys. It is split across independently locked shards.
- **`zinxutil.snowflake`**: `IDWorker` is a snowflake-style 64-bit unique ID generator.
- **`zinxutil.rotating_writer`**: `RotatingWriter` is a buffered log file writer.
  - It rotates the file daily and by size, and zips each rotated file.
  - It prunes old archives.
  - The module also has the helpers `zip_to_file` and `zip_path`.
- **Timers**: `zinxutil.delayfunc`, `zinxutil.timer`, `zinxutil.timewheel` and `zinxutil.scheduler` provide these pieces:
  - delayed callbacks;
  - one-shot timers;
  - hierarchical timing wheels;
  - a `TimerScheduler` that drives hour, minute and second wheels.

## Installation

```
pip install .
```

To include the test dependencies:

```
pip install ".[test]"
```

## Sharded map

```python
from zinxutil.shard_map import ShardLockMap

m = ShardLockMap()             # FNV hashing, 32 shards by default
m.set("user", "alice")
m.set_nx("user", "bob")        # False: "user" is already set
m.mset({"a": 1, "b": 2})

print(m.get("user"))           # "alice"  (None when the key is missing)
print(len(m), "a" in m)        # 3 True
print(m.to_json())             # {"a":1,"b":2,"user":"alice"}

value = m.pop("a")             # 1  (None when the key was missing)
m.remove_cb("b", lambda key, val, exists: exists and val == 2)   # True, "b" removed

m.update_from_json('{"c": 3}')
```

The map has these iteration methods:

- `iter_buffered()` returns an iterator of `Item(key, value)` over a snapshot taken at the moment of the call.
- `items()` returns a plain `dict`.
- `keys()` returns a `list`.
- `iter_cb(callback)` calls `callback(key, value)` while it holds each shard's lock.

Other methods are `count()`, `has()`, `remove()`, `clear()` and `is_empty()`. `ShardLockMap(hasher, shard_count)` accepts any object with a `sum(key)` method as its hasher. The shard count must be at least 1.

## Unique IDs

```python
from zinxutil.snowflake import IDWorker, ClockMovedBackwardsError

worker = IDWorker(1)           # worker id 0..1023, otherwise ValueError
new_id = worker.next_id()
```

An ID is made of three parts: a millisecond timestamp, then 10 bits of worker id, then a 12-bit sequence. `next_id()` raises `ClockMovedBackwardsError` if the clock is earlier than the time of the last ID it issued.

## Rotating log writer

```python
from zinxutil.rotating_writer import RotatingWriter

with RotatingWriter("logs/app.log") as log:
    log.max_size = 16 * 1024 * 1024   # default 64 MiB; values below 1 are ignored
    log.max_age = 7                   # days to keep archives; default 31, <= 0 keeps all
    log.console = True                # also echo to stderr
    log.write(b"service started\n")
```

The writer behaves as follows:

- The log directory is created if it is missing. When the path has no extension, `.log` is used.
- Writes are buffered. A background thread flushes the buffer every 5 seconds, and `flush()` and `close()` flush it as well.
- The file is rotated when the day changes or when it would reach `max_size`. A rotated file is renamed to `app.<YYYY-mm-dd-HHMMSS.ffffff>.log` and then zipped as `app.<...>.zip` in the same directory.
- On a day change, archives older than `max_age` days are deleted in the background.

`zip_to_file(dst, src)` writes a deflate-compressed zip of a file or directory to the path `dst`. `zip_path(dst, src)` writes the same zip to an open binary file. In both, entry names start at the last component of `src`.

## Timers and timing wheels

```python
import time
from zinxutil.delayfunc import DelayFunc
from zinxutil.timer import timer_after
from zinxutil.scheduler import new_auto_exec_timer_scheduler

def hello(*args):
    print("hello", *args)

# One timer in its own background thread; duration in seconds or a timedelta.
timer_after(DelayFunc(hello, ["once"]), 0.5).run()

# A scheduler that runs each callback when its timer is due.
scheduler = new_auto_exec_timer_scheduler()
tid = scheduler.create_timer_after(DelayFunc(hello, ["from the wheel"]), 2.0)
other = scheduler.create_timer_after(DelayFunc(hello, ["never"]), 3.0)
scheduler.cancel_timer(other)

time.sleep(3)
scheduler.stop()
```

- `DelayFunc.call()` logs an exception raised by the callback through `logging` and does not re-raise it.
- `timer_at(delay_func, unix_nano)` creates a timer due at an absolute time. `unix_milli()` returns the current time in milliseconds.
- `TimeWheel(name, interval, scales, max_cap)` is a ring of slots, each `interval` milliseconds wide. Use `add_time_wheel()` to chain a finer wheel. A timer due within one slot is handed down to that finer wheel.
  - `run()` and `stop()` start and stop the wheel's background thread.
  - `tick()` advances the wheel by one slot.
  - `get_timer_within(duration)` takes the timers that are due from the current slot of the finest wheel.
- A `TimerScheduler` created directly puts due callbacks on its `trigger_queue` after `start()`. It does not run them, so the caller reads the queue and calls them. `new_auto_exec_timer_scheduler()` also runs each callback in its own thread.
- The scheduler checks every 50 ms and collects timers due within the next 100 ms. It logs an error for a timer that fires more than 100 ms off its time.
- Both the scheduler and `RotatingWriter` can be used as context managers.

Timer precision is one millisecond.

## What it does not do

This is a library only. It has no command-line program, no network server and no persistent storage. Timers exist only in memory in the running process, so pending timers are lost when the process exits.

## Running the tests

```
pytest
```