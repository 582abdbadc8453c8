"""
Sharded locks keyed by identity.

Two imports of the same logical entity hash to the same shard and serialize.
Unrelated imports almost always land on different shards and run in parallel.
"""

import hashlib
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator


class ShardedLock:
    """A fixed pool of locks addressed by key hash."""

    def __init__(self, shards: int = 64):
        if shards < 1:
            raise ValueError("shards must be at least 1")
        self._locks = [threading.Lock() for _ in range(shards)]

    def shard_for(self, key: str) -> int:
        digest = hashlib.sha256(key.encode()).digest()
        return int.from_bytes(digest[:8], "big") % len(self._locks)

    @contextmanager
    def hold(self, keys: Iterable[str]) -> Iterator[None]:
        """
        Hold the shards for all keys at once.

        Shards are taken in ascending order so two holders with overlapping
        key sets can't deadlock.
        """
        shards = sorted({self.shard_for(k) for k in keys})
        acquired = []
        try:
            for shard in shards:
                self._locks[shard].acquire()
                acquired.append(shard)
            yield
        finally:
            for shard in reversed(acquired):
                self._locks[shard].release()

    @contextmanager
    def hold_one(self, key: str) -> Iterator[None]:
        with self.hold([key]):
            yield
