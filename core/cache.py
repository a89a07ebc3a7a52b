# core/cache.py
import time

from core.config import CACHE_DEFAULT_TTL_SECONDS

CACHE_PREFIX = "cache:"

# Cache durations (seconds)
SHORT = 2 * 60
MEDIUM = 5 * 60
LONG = 15 * 60
VERY_LONG = 60 * 60

# Cache keys
RESTAURANTS = "restaurants"
ORDERS = "user_orders"
PROFILE = "user_profile"


def menu_key(restaurant_id) -> str:
    return f"menu_{restaurant_id}"


class CacheManager:
    """Time-boxed API response cache on top of LocalStorage."""

    def __init__(self, storage, clock=time.time):
        self.storage = storage
        self.clock = clock

    def set(self, key: str, data, expires_in: float = CACHE_DEFAULT_TTL_SECONDS):
        self.storage.save(CACHE_PREFIX + key, {
            "data": data,
            "timestamp": self.clock(),
            "expires_in": expires_in,
        })

    def get(self, key: str, default=None):
        """Cached data, or default if missing or expired (expired entries are removed)."""
        item = self.storage.load(CACHE_PREFIX + key)
        if not item:
            return default
        try:
            expired = self.clock() - item["timestamp"] > item["expires_in"]
        except (KeyError, TypeError):
            expired = True
        if expired:
            self.remove(key)
            return default
        return item.get("data", default)

    def remove(self, key: str):
        self.storage.remove(CACHE_PREFIX + key)

    def clear_all(self):
        for key in self.storage.keys(CACHE_PREFIX):
            self.storage.remove(key)

    def get_or_fetch(self, key: str, fetch, expires_in: float = CACHE_DEFAULT_TTL_SECONDS):
        cached = self.get(key)
        if cached is not None:
            return cached
        data = fetch()
        self.set(key, data, expires_in)
        return data
