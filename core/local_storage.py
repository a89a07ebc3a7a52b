# core/local_storage.py
import json
from datetime import datetime

from core.db import SessionLocal
from models.local_state import LocalState

# Logical keys of the persisted client state
AUTH_KEY = "customer-auth"
CART_KEY = "customer-cart"
FAVORITES_KEY = "customer-favorites"
BEHAVIOR_KEY = "customer-behavior"
PREFERENCES_KEY = "customer-preferences"
RECOMMENDATIONS_KEY = "customer-recommendations"


class LocalStorage:
    """
    Key -> JSON blob store backed by the local_state table.

    Every call opens and closes its own session, so stores can share one
    LocalStorage across threads. Last write wins.
    """

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or SessionLocal

    def load(self, key: str, default=None):
        """Return the decoded blob for key, or default if missing/corrupt."""
        session = self.session_factory()
        try:
            row = session.get(LocalState, key)
            if row is None:
                return default
            return json.loads(row.value)
        except ValueError as e:
            print(f"⚠️ Discarding unreadable local state '{key}': {e}")
            return default
        finally:
            session.close()

    def save(self, key: str, data) -> bool:
        session = self.session_factory()
        try:
            payload = json.dumps(data, default=_json_default)
            row = session.get(LocalState, key)
            if row is None:
                session.add(LocalState(key=key, value=payload, updated_at=datetime.utcnow()))
            else:
                row.value = payload
                row.updated_at = datetime.utcnow()
            session.commit()
            return True
        except Exception as e:
            print(f"Failed to save local state '{key}':", e)
            session.rollback()
            return False
        finally:
            session.close()

    def remove(self, key: str) -> bool:
        session = self.session_factory()
        try:
            deleted = session.query(LocalState).filter(LocalState.key == key).delete()
            session.commit()
            return deleted > 0
        finally:
            session.close()

    def keys(self, prefix: str = ""):
        session = self.session_factory()
        try:
            query = session.query(LocalState.key)
            if prefix:
                query = query.filter(LocalState.key.startswith(prefix))
            return [k for (k,) in query.order_by(LocalState.key).all()]
        finally:
            session.close()


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
