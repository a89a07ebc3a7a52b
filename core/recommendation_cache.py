# core/recommendation_cache.py
import time

from core.config import RECOMMENDATION_TTL_MINUTES
from core.local_storage import RECOMMENDATIONS_KEY


class RecommendationCache:
    """
    Last generated recommendations plus when they were generated.

    is_stale() is True until the first set_recommendations() and again once
    the TTL has passed; callers regenerate and replace the whole payload.
    """

    def __init__(self, storage=None, ttl_seconds=None, clock=time.time):
        self.storage = storage
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else RECOMMENDATION_TTL_MINUTES * 60
        self.clock = clock
        data = storage.load(RECOMMENDATIONS_KEY, default={}) if storage else {}
        data = data or {}
        self.recommendations = data.get("recommendations")
        self.last_updated = data.get("last_updated")

    def set_recommendations(self, payload):
        self.recommendations = payload
        self.last_updated = self.clock()
        self._save()

    def is_stale(self) -> bool:
        if self.last_updated is None:
            return True
        return self.clock() - self.last_updated > self.ttl_seconds

    def clear(self):
        self.recommendations = None
        self.last_updated = None
        self._save()

    def _save(self):
        if self.storage is not None:
            self.storage.save(RECOMMENDATIONS_KEY, {
                "recommendations": self.recommendations,
                "last_updated": self.last_updated,
            })
