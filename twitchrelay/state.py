from __future__ import annotations

import threading

from cachetools import LRUCache

from .config import CACHE_LEN


class SeenStreams:
    """Bounded set of stream IDs that have already been announced.

    Entries leave only when the cache is full and they are the least
    recently used; there is no time-based expiry.
    """

    def __init__(self, maxsize: int = CACHE_LEN) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._cache: LRUCache = LRUCache(maxsize=maxsize)
        self._lock = threading.Lock()

    @property
    def maxsize(self) -> int:
        return int(self._cache.maxsize)

    def check_and_mark(self, stream_id: str) -> bool:
        """Return True if stream_id was already seen, otherwise record it.

        Either way stream_id becomes the most recently used entry.
        """
        with self._lock:
            if stream_id in self._cache:
                # LRUCache bumps recency on __getitem__, not on __contains__
                self._cache[stream_id]
                return True
            self._cache[stream_id] = None
            return False

    def __contains__(self, stream_id: object) -> bool:
        with self._lock:
            return stream_id in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
