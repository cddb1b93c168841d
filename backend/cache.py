"""In-memory TTL cache for upstream API responses."""

import logging
import time
from typing import Any, Callable, Hashable

logger = logging.getLogger("portfolio.cache")

DEFAULT_TTL = 3600  # 1 hour


class TTLCache:
    """Process-local key/value store where every entry carries its own TTL.

    The clock is injectable so tests can move time forward without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, float]] = {}

    def get(self, key: Hashable):
        """Return cached data if it exists and hasn't expired, else None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            logger.debug("cache EXPIRED key=%s", key)
            return None
        return value

    def set(self, key: Hashable, value, ttl: float = DEFAULT_TTL):
        """Store data with a TTL (seconds). Last writer wins."""
        if ttl <= 0:
            return
        self._entries[key] = (value, self._clock() + ttl)

    def invalidate(self, key: Hashable):
        """Remove a cached entry."""
        self._entries.pop(key, None)

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
