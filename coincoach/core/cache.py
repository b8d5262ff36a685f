"""Short-TTL cache for market data.

CoinGecko's free tier allows only a handful of requests per minute, so every
distinct query is fetched at most once per TTL window. Expired values are
kept separately as a last-known copy that the proxy serves when upstream
answers 429.
"""
import threading
import time
from typing import Any, Callable, Hashable, Optional

from cachetools import LRUCache, TTLCache


def cache_key(endpoint: str, ids: str = "", days: str = "") -> str:
    """Compose the cache key for a proxied market-data request."""
    return f"{endpoint}-{ids}-{days}"


class MarketDataCache:
    """TTL cache with a bounded last-known-value fallback."""

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        maxsize: int = 256,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._fresh: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer)
        self._last_known: LRUCache = LRUCache(maxsize=maxsize)
        self._last_key: Optional[Hashable] = None

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the value for ``key`` if it was stored less than TTL ago."""
        with self._lock:
            return self._fresh.get(key)

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._fresh[key] = value
            self._last_known[key] = value
            self._last_key = key

    def get_stale(self, key: Optional[Hashable] = None) -> Optional[Any]:
        """Return the last value stored, ignoring expiry.

        Prefers ``key``'s own last value; otherwise the most recently
        stored value of any key.
        """
        with self._lock:
            if key is not None and key in self._last_known:
                return self._last_known[key]
            if self._last_key is not None and self._last_key in self._last_known:
                return self._last_known[self._last_key]
            return None

    def clear(self) -> None:
        with self._lock:
            self._fresh.clear()
            self._last_known.clear()
            self._last_key = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._fresh)
