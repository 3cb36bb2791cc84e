"""
Zoo API — In-Process TTL Cache
================================

What:  Small key → (value, expiry) cache used for memoized analytics.
How:   Entries expire `ttl` seconds after they are set; expired entries are
       dropped lazily on read and swept on write. A ttl of 0 disables the
       cache: `set` stores nothing and every `get` misses.
Who:   AnalyticsService (dashboard overview); TicketService and
       VisitorService invalidate it when writes that move the numbers commit.

Scope:
    One instance per process, like the rate limiter's request table. With
    several workers each keeps its own copy, so a stale read lasts at most
    one TTL.
"""

import logging
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """
    Expiring key/value store.

    Args:
        ttl:   Seconds an entry stays valid (0 disables caching)
        clock: Monotonic time source; tests inject a fake one
    """

    def __init__(self, ttl: int, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            return default
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return default
        return value

    def set(self, key: Hashable, value: Any, ttl: Optional[int] = None) -> None:
        lifetime = self.ttl if ttl is None else ttl
        if lifetime <= 0:
            return
        now = self._clock()
        self._sweep(now)
        self._entries[key] = (value, now + lifetime)

    def invalidate(self, key: Hashable) -> None:
        if self._entries.pop(key, _MISSING) is not _MISSING:
            logger.debug("Cache entry invalidated: %s", key)

    def invalidate_prefix(self, prefix: str) -> int:
        """Drops every string key starting with `prefix`; returns how many."""
        doomed = [k for k in self._entries if isinstance(k, str) and k.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug("Cache invalidated %d entries with prefix '%s'", len(doomed), prefix)
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        self._sweep(self._clock())
        return len(self._entries)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
