import logging
import threading

from cachetools import TTLCache
from flask import current_app

logger = logging.getLogger(__name__)

PUBLISHED_MODULES_KEY = 'published_modules'
SYSTEM_STATS_KEY = 'system_stats'


class TTLResponseCache:
    """Process-wide time-to-live cache for expensive read payloads."""

    def __init__(self, ttl=300, max_size=256, enabled=True):
        self.enabled = enabled
        self._cache = TTLCache(maxsize=max_size, ttl=ttl)
        self._lock = threading.Lock()

    def get(self, key):
        if not self.enabled:
            return None
        with self._lock:
            return self._cache.get(key)

    def set(self, key, value):
        if not self.enabled:
            return
        with self._lock:
            self._cache[key] = value

    def clear(self, key=None):
        with self._lock:
            if key is None:
                self._cache.clear()
                logger.debug("Cache cleared")
            else:
                self._cache.pop(key, None)
                logger.debug("Cache entry cleared: %s", key)

    def __contains__(self, key):
        with self._lock:
            return key in self._cache

    def __len__(self):
        with self._lock:
            return len(self._cache)


def get_cache():
    return current_app.extensions['mathturo_cache']


def invalidate(*keys):
    cache = get_cache()
    for key in keys:
        cache.clear(key)
