# core/session_store.py
import threading

from core.local_storage import AUTH_KEY, FAVORITES_KEY


class AuthStore:
    """Token and principal of the signed-in user, persisted under 'customer-auth'."""

    def __init__(self, storage=None):
        self.storage = storage
        self._lock = threading.Lock()
        data = storage.load(AUTH_KEY, default={}) if storage else {}
        data = data or {}
        self.token = data.get("token")
        self.user = data.get("user")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def principal_id(self):
        if not self.user:
            return None
        user_id = self.user.get("id")
        return str(user_id) if user_id is not None else None

    def set_auth(self, token: str, user: dict):
        with self._lock:
            self.token = token
            self.user = user
            self._save()
        print(f"✅ Session started for {(user or {}).get('email', self.principal_id)}")

    def logout(self):
        with self._lock:
            self.token = None
            self.user = None
            self._save()
        print("🔴 Session ended")

    def auth_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _save(self):
        if self.storage is not None:
            self.storage.save(AUTH_KEY, {"token": self.token, "user": self.user})


class FavoritesStore:
    """Favorite restaurant ids, persisted under 'customer-favorites'."""

    def __init__(self, storage=None):
        self.storage = storage
        data = storage.load(FAVORITES_KEY, default={}) if storage else {}
        self.favorite_restaurants = [str(r) for r in (data or {}).get("favorite_restaurants", [])]

    def toggle_favorite(self, restaurant_id) -> bool:
        """Flip favorite state; returns True if now a favorite."""
        restaurant_id = str(restaurant_id)
        if restaurant_id in self.favorite_restaurants:
            self.favorite_restaurants.remove(restaurant_id)
            now_favorite = False
        else:
            self.favorite_restaurants.append(restaurant_id)
            now_favorite = True
        if self.storage is not None:
            self.storage.save(FAVORITES_KEY, {"favorite_restaurants": self.favorite_restaurants})
        return now_favorite

    def is_favorite(self, restaurant_id) -> bool:
        return str(restaurant_id) in self.favorite_restaurants
