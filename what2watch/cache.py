"""
In-memory TTL cache.
Entries are written once with an expiry; expired entries are dropped on read and
swept on every write. The clock is injectable.
"""

import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    """Thread-safe key -> (value, expiry) store."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.time):
        """
        Initialize the cache.

        Args:
            ttl: Time-to-live of every entry, in seconds
            clock: Returns the current time in seconds (time.time by default)
        """
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        now = self.clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if now >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any):
        """Store a value; an existing entry for the key is replaced and expired entries are dropped."""
        now = self.clock()
        with self._lock:
            expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
            for k in expired:
                del self._entries[k]
            self._entries[key] = (value, now + self.ttl)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)
