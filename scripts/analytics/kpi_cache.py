"""
Time-bounded cache for computed KPI results.

One entry per metric family and filter fingerprint, e.g.
``"kpis:3f2a..."`` or ``"trends:month:3f2a..."``. An entry is served while
its age is below the expiry and evicted on the first read after that.

Usage:
    cache = KPICache(expiry_seconds=300)
    cached = cache.get(key)
    if cached is None:
        cached = compute()
        cache.set(key, cached)
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from scripts.lib.logger import setup_logger

logger = setup_logger("kpi_cache")

DEFAULT_EXPIRY_SECONDS = 300  # 5 minutes


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    computed_at: datetime
    expiry: timedelta

    def is_valid(self, now: datetime) -> bool:
        return now - self.computed_at < self.expiry


class KPICache:
    """
    Cache owned by a single KPI service instance.

    Not thread-safe: it is only touched from the service's event loop.
    """

    def __init__(
        self,
        expiry_seconds: float = DEFAULT_EXPIRY_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.expiry = timedelta(seconds=expiry_seconds)
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value if present and younger than the expiry."""
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache miss: %s", key)
            return None

        if not entry.is_valid(self._clock()):
            logger.debug("Cache expired: %s (computed at %s)", key, entry.computed_at)
            del self._entries[key]
            return None

        logger.debug("Cache hit: %s", key)
        return entry.value

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` and evict every other expired entry."""
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if not entry.is_valid(now)]
        for stale in expired:
            del self._entries[stale]
        if expired:
            logger.debug("Evicted %d expired cache entries", len(expired))

        self._entries[key] = CacheEntry(value=value, computed_at=now, expiry=self.expiry)

    def clear(self) -> None:
        """Reset every entry to empty."""
        count = len(self._entries)
        self._entries.clear()
        logger.info("KPI cache cleared (%d entries)", count)

    @property
    def last_updated(self) -> Optional[datetime]:
        """When the most recent entry was computed, or None if empty."""
        if not self._entries:
            return None
        return max(entry.computed_at for entry in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
