"""
In-process TTL cache for policy and user-existence lookups.

Caches are explicit objects injected into the components that use them, so
every write path can invalidate the entries it makes stale.
"""

import logging
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """Key/value cache whose entries expire ``ttl_seconds`` after being set.

    A TTL of 0 disables caching entirely.
    """

    def __init__(
        self,
        ttl_seconds: int,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get a live value, dropping it if expired."""
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            logger.debug("%s MISS: %s", self.name, key)
            return default
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            logger.debug("%s EXPIRED: %s", self.name, key)
            return default
        logger.debug("%s HIT: %s", self.name, key)
        return value

    def set(self, key: str, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns True if it was present."""
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("%s INVALIDATE: %s", self.name, key)
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)


def make_key(*parts: Optional[str]) -> str:
    """Join key parts with ':' in the usual cache-key shape."""
    return ":".join(str(part) for part in parts if part is not None)
