"""
Striped in-process locks keyed by record id.

A fixed pool of ``threading.Lock`` objects is shared by hashing the key,
so memory stays bounded no matter how many slots or bookings exist.
Unrelated keys may share a stripe; that only costs contention, never
correctness. Callers must not take two stripes of the same instance at
once.

Usage:
    locks = KeyedLock(shards=64)
    with locks.hold("SL-1234"):
        ...  # at most one thread per stripe in here
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    """Fixed-size pool of mutexes addressed by string key."""

    def __init__(self, shards: int = 64) -> None:
        if shards < 1:
            raise ValueError(f"shards must be >= 1, got {shards}")
        self._locks = [threading.Lock() for _ in range(shards)]

    @property
    def shards(self) -> int:
        return len(self._locks)

    def lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self.lock_for(key):
            yield
