# extract_builder/catalog/cache.py
"""Process-local TTL cache for read-mostly catalog lookups."""

import threading
import time
from typing import Any, Callable, Dict, Hashable, Tuple


class CatalogCache:
    """Key/value cache whose entries expire ``ttl_seconds`` after they were stored."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, calling ``loader`` on a miss or expiry."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] > now:
                return entry[1]

        # Loader runs outside the lock; concurrent misses may both load
        value = loader()
        with self._lock:
            now = self._clock()
            self._prune(now)
            self._entries[key] = (now + self.ttl_seconds, value)
        return value

    def _prune(self, now: float) -> None:
        # Caller holds the lock
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def invalidate(self, key: Hashable = None) -> None:
        """Drop one entry, or everything when no key is given."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
