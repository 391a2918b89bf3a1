"""A thread-safe string-keyed map split into independently locked shards."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from zinxutil.hashing import Hasher, default_hash

SHARD_COUNT = 32


@dataclass(frozen=True)
class Item:
    """A key and its value, as yielded by :meth:`ShardLockMap.iter_buffered`."""

    key: str
    value: Any


class _Shard:
    __slots__ = ("items", "lock")

    def __init__(self) -> None:
        self.items: dict[str, Any] = {}
        self.lock = threading.Lock()


class ShardLockMap:
    """A map of string keys divided over several shards, each with its own lock."""

    def __init__(self, hasher: Hasher | None = None, shard_count: int = SHARD_COUNT) -> None:
        if shard_count < 1:
            raise ValueError("shard_count must be at least 1")
        self._hasher = hasher if hasher is not None else default_hash()
        self._shards = [_Shard() for _ in range(shard_count)]

    def _shard(self, key: str) -> _Shard:
        return self._shards[self._hasher.sum(key) % len(self._shards)]

    def count(self) -> int:
        """Return the number of stored elements."""
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.items)
        return total

    def get(self, key: str) -> Any:
        """Return the value stored under ``key``, or None if there is none."""
        shard = self._shard(key)
        with shard.lock:
            return shard.items.get(key)

    def set(self, key: str, value: Any) -> None:
        shard = self._shard(key)
        with shard.lock:
            shard.items[key] = value

    def set_nx(self, key: str, value: Any) -> bool:
        """Store ``value`` only if ``key`` is absent; return whether it was stored."""
        shard = self._shard(key)
        with shard.lock:
            if key in shard.items:
                return False
            shard.items[key] = value
            return True

    def mset(self, data: Mapping[str, Any]) -> None:
        for key, value in data.items():
            self.set(key, value)

    def has(self, key: str) -> bool:
        shard = self._shard(key)
        with shard.lock:
            return key in shard.items

    def remove(self, key: str) -> None:
        shard = self._shard(key)
        with shard.lock:
            shard.items.pop(key, None)

    def remove_cb(self, key: str, callback: Callable[[str, Any, bool], bool]) -> bool:
        """Call ``callback(key, value, exists)`` under the shard lock.

        The element is removed if the callback returns true and it exists.
        The callback's result is returned either way.
        """
        shard = self._shard(key)
        with shard.lock:
            exists = key in shard.items
            value = shard.items.get(key)
            remove = bool(callback(key, value, exists))
            if remove and exists:
                del shard.items[key]
            return remove

    def pop(self, key: str) -> Any:
        """Remove ``key`` and return its value, or None if it was absent."""
        shard = self._shard(key)
        with shard.lock:
            return shard.items.pop(key, None)

    def clear(self) -> None:
        for shard in self._shards:
            with shard.lock:
                shard.items.clear()

    def is_empty(self) -> bool:
        return self.count() == 0

    def iter_buffered(self) -> Iterator[Item]:
        """Return an iterator over a snapshot taken when this is called."""
        snapshot: list[Item] = []
        for shard in self._shards:
            with shard.lock:
                snapshot.extend(Item(k, v) for k, v in shard.items.items())
        return iter(snapshot)

    def items(self) -> dict[str, Any]:
        return {item.key: item.value for item in self.iter_buffered()}

    def keys(self) -> list[str]:
        result: list[str] = []
        for shard in self._shards:
            with shard.lock:
                result.extend(shard.items)
        return result

    def iter_cb(self, callback: Callable[[str, Any], None]) -> None:
        """Call ``callback(key, value)`` for every element, holding each shard's lock."""
        for shard in self._shards:
            with shard.lock:
                for key, value in shard.items.items():
                    callback(key, value)

    def to_json(self) -> str:
        """Serialise the contents as a JSON object with sorted keys."""
        return json.dumps(self.items(), sort_keys=True, separators=(",", ":"))

    def update_from_json(self, data: str | bytes) -> None:
        """Set every key of a JSON object into the map."""
        decoded = json.loads(data)
        if decoded is None:
            return
        if not isinstance(decoded, dict):
            raise ValueError("JSON value is not an object")
        self.mset(decoded)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)