"""A log file writer that rotates by day and by size and archives old files as zip."""

from __future__ import annotations

import os
import sys
import threading
import zipfile
from collections.abc import Iterator
from datetime import datetime, timedelta
from types import TracebackType
from typing import BinaryIO

SIZE_MIB = 1024 * 1024
DEFAULT_MAX_AGE = 31
DEFAULT_MAX_SIZE = 64 * SIZE_MIB
DEFAULT_SUFFIX = ".log"
ZIP_SUFFIX = ".zip"
FLUSH_INTERVAL = 5.0

_BUFFER_SIZE = 4096
_ARCHIVE_TIME_FORMAT = ".%Y-%m-%d-%H%M%S.%f"


def _echo(data: bytes) -> None:
    stream = sys.stderr
    buffer = getattr(stream, "buffer", None)
    if buffer is not None:
        stream.flush()
        buffer.write(data)
        buffer.flush()
    else:
        stream.write(data.decode("utf-8", errors="replace"))


class RotatingWriter:
    """Buffered writer to a log file.

    The file is archived into a zip next to it when the day changes or when
    it would grow past ``max_size`` bytes. On a day change, archives older
    than ``max_age`` days are deleted. Buffered data is flushed every few
    seconds in the background.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        self._dir = os.path.dirname(self.path) or os.curdir
        stem, suffix = os.path.splitext(os.path.basename(self.path))
        self._name = stem
        self._suffix = suffix or DEFAULT_SUFFIX
        self._max_size = DEFAULT_MAX_SIZE
        self.max_age = DEFAULT_MAX_AGE
        self.console = False

        self._lock = threading.Lock()
        self._file: BinaryIO | None = None
        self._buffer = bytearray()
        self._size = 0
        self._created = datetime.now()
        self._flusher: threading.Thread | None = None
        self._stop = threading.Event()
        self._cleanups: list[threading.Thread] = []

        try:
            os.makedirs(self._dir, mode=0o755, exist_ok=True)
        except OSError:
            pass
        self._ensure_flusher()

    @property
    def max_size(self) -> int:
        """Largest size in bytes of one log file; values below 1 are ignored."""
        return self._max_size

    @max_size.setter
    def max_size(self, value: int) -> None:
        if value < 1:
            return
        with self._lock:
            self._max_size = value

    def write(self, data: bytes | bytearray | memoryview | str) -> int:
        """Append ``data`` to the log and return the number of bytes taken."""
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        with self._lock:
            if self.console:
                _echo(payload)
            if self._file is None:
                try:
                    self._rotate()
                except OSError:
                    _echo(payload)
                    raise

            if self._created.date() != datetime.now().date():
                self._start_cleanup()
                self._rotate()

            if self._size + len(payload) + len(self._buffer) >= self._max_size:
                self._rotate()

            self._buffer.extend(payload)
            if len(self._buffer) >= _BUFFER_SIZE:
                self._flush_buffer()
            self._size += len(payload)
            return len(payload)

    def flush(self) -> None:
        """Write buffered data to the file."""
        with self._lock:
            self._flush_buffer()

    def close(self) -> None:
        """Flush and close the file and stop background work."""
        self.flush()
        with self._lock:
            file, self._file = self._file, None
            if file is not None:
                try:
                    os.fsync(file.fileno())
                finally:
                    file.close()
            flusher, self._flusher = self._flusher, None
            self._stop.set()
            cleanups, self._cleanups = self._cleanups, []
        if flusher is not None and flusher is not threading.current_thread():
            flusher.join()
        for cleanup in cleanups:
            cleanup.join()

    def __enter__(self) -> RotatingWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _ensure_flusher(self) -> None:
        if self._flusher is not None and self._flusher.is_alive():
            return
        self._stop = threading.Event()
        stop = self._stop
        self._flusher = threading.Thread(
            target=self._flush_periodically, args=(stop,), daemon=True
        )
        self._flusher.start()

    def _flush_periodically(self, stop: threading.Event) -> None:
        while not stop.wait(FLUSH_INTERVAL):
            try:
                self.flush()
            except OSError:
                pass

    def _flush_buffer(self) -> None:
        if self._file is None or not self._buffer:
            return
        self._file.write(self._buffer)
        self._file.flush()
        self._buffer.clear()

    def _rotate(self) -> None:
        now = datetime.now()
        if self._file is not None:
            file, self._file = self._file, None
            try:
                self._flush_buffer_to(file)
                os.fsync(file.fileno())
            finally:
                file.close()
            self._archive_current()
            self._size = 0

        try:
            info = os.stat(self.path)
        except OSError:
            self._created = now
        else:
            self._size = info.st_size
            self._created = datetime.fromtimestamp(info.st_mtime)
        self._file = open(self.path, "ab")
        self._ensure_flusher()

    def _flush_buffer_to(self, file: BinaryIO) -> None:
        if self._buffer:
            file.write(self._buffer)
            file.flush()
            self._buffer.clear()

    def _archive_current(self) -> None:
        backup = self._name + self._created.strftime(_ARCHIVE_TIME_FORMAT)
        backup_path = os.path.join(self._dir, backup + self._suffix)
        try:
            os.replace(self.path, backup_path)
        except OSError:
            return
        try:
            zip_to_file(os.path.join(self._dir, backup + ZIP_SUFFIX), backup_path)
        except OSError as exc:
            print(exc)
        else:
            try:
                os.remove(backup_path)
            except OSError:
                pass

    def _start_cleanup(self) -> None:
        self._cleanups = [t for t in self._cleanups if t.is_alive()]
        cleanup = threading.Thread(target=self._delete_expired, daemon=True)
        self._cleanups.append(cleanup)
        cleanup.start()

    def _delete_expired(self) -> None:
        max_age = self.max_age
        if max_age <= 0:
            return
        cutoff = datetime.now() - timedelta(days=max_age)
        try:
            entries = list(os.scandir(self._dir))
        except OSError:
            return
        for entry in entries:
            if entry.is_dir():
                continue
            stamp = self._archive_time(entry.name)
            if stamp is not None and stamp < cutoff:
                try:
                    os.remove(entry.path)
                except OSError:
                    pass

    def _archive_time(self, name: str) -> datetime | None:
        text = name.removeprefix(self._name).removesuffix(ZIP_SUFFIX)
        try:
            return datetime.strptime(text, _ARCHIVE_TIME_FORMAT)
        except ValueError:
            return None


def zip_to_file(dst: str | os.PathLike[str], src: str | os.PathLike[str]) -> None:
    """Compress the file or directory ``src`` into a new zip file at ``dst``."""
    with open(os.path.normpath(os.fspath(dst)), "wb") as out:
        zip_path(out, src)


def _walk(root: str) -> Iterator[str]:
    yield root
    if os.path.isdir(root) and not os.path.islink(root):
        for name in sorted(os.listdir(root)):
            yield from _walk(os.path.join(root, name))


def zip_path(dst: BinaryIO, src: str | os.PathLike[str]) -> None:
    """Write a deflate-compressed zip of the file or directory ``src`` to ``dst``.

    Entry names start at the last component of ``src``; directories end in "/".
    """
    source = os.path.normpath(os.fspath(src))
    os.stat(source)
    parent = os.path.dirname(source) or os.curdir
    with zipfile.ZipFile(dst, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in _walk(source):
            arcname = os.path.relpath(path, parent).replace(os.sep, "/")
            arcname = arcname.replace("\\", "/").strip("/")
            archive.write(path, arcname)