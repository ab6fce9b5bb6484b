"""
Keyed read-through cache.

Values are read from a backing reader on first access and memoized.
A miss (reader returns None) is not memoized, so the next access reads
through again.

Concurrency:
    Each key has its own lock guarding the get-or-insert sequence. Two
    callers asking for the same uncached key cause exactly one backing
    read; callers for different keys never wait on each other's reads.
    A key's lock exists only while some caller is inside get() for it.
"""

from __future__ import annotations

import threading
from typing import Dict, Generic, Hashable, Optional, Protocol, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")
K_contra = TypeVar("K_contra", contravariant=True)
V_co = TypeVar("V_co", covariant=True)


class KeyedReader(Protocol[K_contra, V_co]):
    def try_read(self, key: K_contra) -> Optional[V_co]:
        ...


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class ReadThroughCache(Generic[K, V]):
    def __init__(self, reader: KeyedReader[K, V]) -> None:
        self._reader = reader
        self._values: Dict[K, V] = {}
        # Only keys with a caller inside get() hold an entry here.
        self._key_locks: Dict[K, _KeyLock] = {}
        self._registry_lock = threading.Lock()

    def get(self, key: K) -> Optional[V]:
        # Fast path: dict reads are atomic and values are never replaced.
        try:
            return self._values[key]
        except KeyError:
            pass

        key_lock = self._enter(key)
        try:
            with key_lock.lock:
                if key in self._values:
                    return self._values[key]

                value = self._reader.try_read(key)
                if value is not None:
                    self._values[key] = value
                return value
        finally:
            self._leave(key, key_lock)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def _enter(self, key: K) -> _KeyLock:
        with self._registry_lock:
            key_lock = self._key_locks.get(key)
            if key_lock is None:
                key_lock = self._key_locks[key] = _KeyLock()
            key_lock.users += 1
            return key_lock

    def _leave(self, key: K, key_lock: _KeyLock) -> None:
        with self._registry_lock:
            key_lock.users -= 1
            if key_lock.users == 0:
                del self._key_locks[key]
