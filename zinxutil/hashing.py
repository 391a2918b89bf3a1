"""32-bit FNV-1 string hashing used to pick shards."""

from __future__ import annotations

from typing import Protocol

FNV_PRIME = 16777619
FNV_OFFSET_BASIS = 2166136261
_MASK32 = 0xFFFFFFFF


class Hasher(Protocol):
    """Anything that maps a string key to an unsigned 32-bit integer."""

    def sum(self, key: str) -> int:
        ...


class Fnv32Hash:
    """The 32-bit FNV-1 hash: multiply by the prime, then xor each byte."""

    def sum(self, key: str | bytes) -> int:
        data = key.encode("utf-8") if isinstance(key, str) else key
        value = FNV_OFFSET_BASIS
        for byte in data:
            value = (value * FNV_PRIME) & _MASK32
            value ^= byte
        return value


def default_hash() -> Fnv32Hash:
    """Return the hasher used when none is given."""
    return Fnv32Hash()