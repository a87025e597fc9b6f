"""In-memory TTL cache for recording payloads and auxiliary lookups.

Single-process store shared by every request handler. All methods are
synchronous and never await, so on the asyncio loop each call (including the
lazy delete inside ``get`` and the scan inside ``sweep``) runs to completion
before another handler or the cleanup task can touch the map.

Key format (stable, see ``generate_cache_key``)::

    <namespace>|<param>:<value>|<param>:<value>

Parameter pairs are sorted by name and every name/value is percent-encoded,
so ``|`` and ``:`` only ever appear as separators.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import quote

from core.exceptions import CacheMiss
from core.logging import get_logger, log_cache_operation

logger = get_logger(__name__)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """A single cache entry. Visible only while ``now < expires_at``."""
    value: Any
    expires_at: float  # Unix timestamp

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


def generate_cache_key(namespace: str, params: Mapping[str, Any]) -> str:
    """Build a deterministic key from a namespace tag and request parameters."""
    parts = [quote(namespace, safe="")]
    for name in sorted(params):
        parts.append(f"{quote(str(name), safe='')}:{quote(str(params[name]), safe='')}")
    return "|".join(parts)


class TTLCache:
    """Key/value store with per-entry expiration and a hard entry bound.

    When a new key would exceed ``max_entries`` the expired entries are swept
    first, then the entry closest to expiry is evicted.
    """

    def __init__(self, max_entries: int = 1000, clock: Clock = time.time):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        try:
            self.lookup(key)
        except CacheMiss:
            return False
        return True

    def lookup(self, key: str) -> Any:
        """Return the live value for ``key`` or raise ``CacheMiss``.

        An expired entry is removed as part of the read.
        """
        entry = self._entries.get(key)
        if entry is not None and not entry.is_expired(self._clock()):
            log_cache_operation(logger, "get", key, hit=True)
            return entry.value

        if entry is not None:
            del self._entries[key]
        log_cache_operation(logger, "get", key, hit=False)
        raise CacheMiss(key)

    def get(self, key: str, default: Any = None) -> Any:
        """Get value from cache if not expired."""
        try:
            return self.lookup(key)
        except CacheMiss:
            return default

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Set value in cache with TTL in seconds, replacing any previous entry."""
        if key not in self._entries and len(self._entries) >= self.max_entries:
            self._make_room()
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
        log_cache_operation(logger, "set", key, ttl=ttl)

    def delete(self, key: str) -> bool:
        """Delete value from cache. Returns whether something was removed."""
        deleted = self._entries.pop(key, None) is not None
        log_cache_operation(logger, "delete", key, deleted=deleted)
        return deleted

    def clear(self) -> int:
        """Clear all cache entries."""
        count = len(self._entries)
        self._entries.clear()
        logger.info("All cache cleared", deleted=count)
        return count

    def clear_pattern(self, pattern: str) -> int:
        """Clear keys containing ``pattern`` (``*`` wildcards are ignored)."""
        needle = pattern.replace("*", "")
        keys_to_delete = [k for k in self._entries if needle in k]
        for key in keys_to_delete:
            del self._entries[key]
        log_cache_operation(logger, "clear_pattern", pattern, deleted=len(keys_to_delete))
        if keys_to_delete:
            logger.info("Cleared cache entries matching pattern",
                        pattern=pattern, deleted=len(keys_to_delete))
        return len(keys_to_delete)

    def clear_param(self, name: str, value: Any) -> int:
        """Clear keys built with parameter ``name`` equal to ``value``."""
        segment = f"{quote(str(name), safe='')}:{quote(str(value), safe='')}"
        keys_to_delete = [k for k in self._entries if segment in k.split("|")[1:]]
        for key in keys_to_delete:
            del self._entries[key]
        log_cache_operation(logger, "clear_param", segment, deleted=len(keys_to_delete))
        return len(keys_to_delete)

    def sweep(self) -> int:
        """Remove every entry whose ``expires_at <= now``."""
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Cleaned up expired cache entries", count=len(expired))
        return len(expired)

    def status(self) -> Dict[str, Any]:
        """Entry counts without mutating the store."""
        now = self._clock()
        active = sum(1 for entry in self._entries.values() if not entry.is_expired(now))
        return {
            "total_entries": len(self._entries),
            "active_entries": active,
            "expired_entries": len(self._entries) - active,
            "max_entries": self.max_entries,
            "timestamp": datetime.fromtimestamp(now).isoformat(),
        }

    def _make_room(self) -> None:
        if self.sweep() > 0 and len(self._entries) < self.max_entries:
            return
        victim: Optional[str] = min(self._entries, key=lambda k: self._entries[k].expires_at, default=None)
        if victim is not None:
            del self._entries[victim]
            logger.warning("Cache full, evicted entry", cache_key=victim, max_entries=self.max_entries)
