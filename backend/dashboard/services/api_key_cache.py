"""Time-boxed in-memory cache of API keys by service name."""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from dashboard.core.config import settings


class ApiKeyCache:
    """
    Remembers the last fetched key of each service for ``ttl_s`` seconds.

    There is no size bound or per-entry invalidation: entries expire, and any
    write to the settings store clears the whole cache.
    """

    def __init__(self, ttl_s: Optional[float] = None, clock: Callable[[], float] = time.time):
        self._ttl_s = ttl_s
        self._clock = clock
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._lock = threading.Lock()

    @property
    def ttl_s(self) -> float:
        if self._ttl_s is None:
            return max(0.0, settings.API_KEY_CACHE_TTL_S)
        return max(0.0, self._ttl_s)

    def get(self, service_name: str) -> Tuple[bool, Optional[str]]:
        ttl_s = self.ttl_s
        if ttl_s <= 0:
            return False, None
        now = self._clock()
        with self._lock:
            entry = self._entries.get(service_name)
            if not entry:
                return False, None
            cached_at, api_key = entry
            if now - cached_at >= ttl_s:
                self._entries.pop(service_name, None)
                return False, None
            return True, api_key

    def set(self, service_name: str, api_key: str) -> None:
        if self.ttl_s <= 0:
            return
        with self._lock:
            self._entries[service_name] = (self._clock(), api_key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


api_key_cache = ApiKeyCache()
