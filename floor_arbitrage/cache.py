"""
In-memory response cache with time-based freshness.

Entries are never invalidated on write elsewhere: a stale entry stays in
place until the next successful fetch overwrites it or purge_expired()
drops it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

from .constants import CACHE_KEY_PREFIX, DEFAULT_CACHE_TTL_SECONDS
from .interfaces import SystemTimeProvider, TimeProvider
from .utils import sanitize_params

logger = logging.getLogger(__name__)


def generate_cache_key(endpoint: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Build a deterministic cache key from an endpoint and its query parameters.

    Parameters are sanitized and sorted by name before URL encoding, so the
    key does not depend on insertion order and separator characters inside
    values cannot make two different parameter sets collide.
    """
    cleaned = sanitize_params(params)
    query = urlencode(sorted(cleaned.items()), doseq=True)
    return f"{CACHE_KEY_PREFIX}:{endpoint}?{query}"


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the time it was stored."""

    value: Any
    stored_at: float
    ttl: float

    def is_fresh(self, now: float, ttl: Optional[float] = None) -> bool:
        lifetime = self.ttl if ttl is None else ttl
        return now - self.stored_at < lifetime


class MemoryCache:
    """Async key/value cache keeping CacheEntry snapshots in a dict."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        time_provider: Optional[TimeProvider] = None,
    ):
        self.default_ttl = default_ttl
        self._time = time_provider or SystemTimeProvider()
        self._entries: Dict[str, CacheEntry] = {}

    async def get(self, key: str, ttl: Optional[float] = None) -> Optional[Any]:
        """
        Return the cached value for key, or None on a miss.

        A per-read ttl overrides the lifetime recorded at write time.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._time.current_timestamp(), ttl):
            logger.debug(f"Cache entry expired: {key}")
            return None
        return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        self._entries[key] = CacheEntry(
            value=value,
            stored_at=self._time.current_timestamp(),
            ttl=self.default_ttl if ttl is None else ttl,
        )

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every stale entry and return how many were removed."""
        now = self._time.current_timestamp()
        expired = [k for k, e in self._entries.items() if not e.is_fresh(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
