# core/behavior_tracker.py
"""
Append-only behavior log (views, orders, searches, cart interactions)
used to derive UserPreferences for personalization.

Each log keeps only its most recent entries; preferences are recomputed
from the log on demand and cached under 'customer-preferences'.
"""
import time
from datetime import datetime

import pandas as pd

from core.local_storage import BEHAVIOR_KEY, PREFERENCES_KEY
from models.preferences import UserPreferences

MAX_VIEWS = 1000
MAX_ORDERS = 100
MAX_SEARCHES = 500
MAX_CART_INTERACTIONS = 500

VIEW_TYPES = ("restaurant", "menu_item", "category")
CART_ACTIONS = ("add", "remove", "update")


def _empty_data():
    return {
        "views": [],
        "orders": [],
        "searches": [],
        "cart_interactions": [],
        "time_patterns": {},
        "dietary_restrictions": [],
    }


def _append_capped(entries: list, entry: dict, cap: int):
    entries.append(entry)
    if len(entries) > cap:
        del entries[:-cap]


class BehaviorTracker:
    def __init__(self, storage=None, clock=time.time):
        self.storage = storage
        self.clock = clock
        self.data = self._load()

    def _load(self):
        data = _empty_data()
        if self.storage is None:
            return data
        stored = self.storage.load(BEHAVIOR_KEY, default={}) or {}
        # Missing fields keep their defaults
        for key in data:
            if key in stored and stored[key] is not None:
                data[key] = stored[key]
        return data

    def _save(self):
        if self.storage is not None:
            self.storage.save(BEHAVIOR_KEY, self.data)

    def _record_hour(self, timestamp: float):
        hour = str(datetime.fromtimestamp(timestamp).hour)
        patterns = self.data["time_patterns"]
        patterns[hour] = patterns.get(hour, 0) + 1

    # ===================== TRACKING =====================

    def track_view(self, view_type: str, item_id, name: str, metadata=None):
        if view_type not in VIEW_TYPES:
            raise ValueError(f"Unknown view type: {view_type!r}")
        now = self.clock()
        _append_capped(self.data["views"], {
            "type": view_type,
            "id": str(item_id),
            "name": name,
            "timestamp": now,
            "metadata": metadata,
        }, MAX_VIEWS)
        self._record_hour(now)
        self._save()

    def track_order(self, order_id, restaurant_id, restaurant_name: str, items, total: float):
        """items: dicts with id, name, price, quantity"""
        _append_capped(self.data["orders"], {
            "order_id": str(order_id),
            "restaurant_id": str(restaurant_id),
            "restaurant_name": restaurant_name,
            "items": [dict(item) for item in items],
            "total": float(total),
            "timestamp": self.clock(),
        }, MAX_ORDERS)
        self._save()

    def track_search(self, query: str, results: int):
        _append_capped(self.data["searches"], {
            "query": query,
            "results": int(results),
            "timestamp": self.clock(),
        }, MAX_SEARCHES)
        self._save()

    def track_cart_interaction(self, action: str, item_id, item_name: str, quantity: int):
        if action not in CART_ACTIONS:
            raise ValueError(f"Unknown cart action: {action!r}")
        _append_capped(self.data["cart_interactions"], {
            "action": action,
            "item_id": str(item_id),
            "item_name": item_name,
            "quantity": int(quantity),
            "timestamp": self.clock(),
        }, MAX_CART_INTERACTIONS)
        self._save()

    def set_dietary_restrictions(self, restrictions):
        self.data["dietary_restrictions"] = sorted({str(r).strip().lower() for r in restrictions if str(r).strip()})
        self._save()

    # ===================== DERIVED VIEWS =====================

    def get_preferences(self) -> UserPreferences:
        prefs = UserPreferences(
            dietary_restrictions=list(self.data["dietary_restrictions"]),
            last_active_time=self.clock(),
        )
        orders = self.data["orders"]
        if orders:
            totals = pd.Series([o["total"] for o in orders], dtype="float64")
            prefs.average_order_value = round(float(totals.mean()), 2)
            prefs.price_range = {"min": float(totals.min()), "max": float(totals.max())}

            lines = pd.DataFrame(
                [{"id": str(i.get("id")), "name": i.get("name", ""), "quantity": int(i.get("quantity", 1))}
                 for o in orders for i in o.get("items", [])],
                columns=["id", "name", "quantity"],
            )
            if not lines.empty:
                counts = (
                    lines.groupby("id", sort=False)
                    .agg(name=("name", "first"), count=("quantity", "sum"))
                    .sort_values("count", ascending=False, kind="stable")
                    .head(10)
                )
                prefs.frequently_ordered_items = [
                    {"id": item_id, "name": row["name"], "count": int(row["count"])}
                    for item_id, row in counts.iterrows()
                ]

            restaurants = (
                pd.Series([o["restaurant_id"] for o in orders])
                .to_frame("restaurant_id")
                .groupby("restaurant_id", sort=False)
                .size()
                .sort_values(ascending=False, kind="stable")
                .head(5)
            )
            prefs.preferred_restaurants = [str(r) for r in restaurants.index]

        cuisines = [
            (v.get("metadata") or {}).get("cuisine")
            for v in self.data["views"]
            if v.get("type") == "restaurant" and isinstance(v.get("metadata"), dict)
        ]
        cuisines = [c for c in cuisines if c]
        if cuisines:
            top = pd.Series(cuisines).to_frame("cuisine").groupby("cuisine", sort=False).size()
            prefs.favorite_cuisines = list(top.sort_values(ascending=False, kind="stable").head(5).index)

        if self.storage is not None:
            self.storage.save(PREFERENCES_KEY, prefs.to_dict())
        return prefs

    def get_most_viewed_items(self, limit: int = 10):
        views = [v for v in self.data["views"] if v.get("type") == "menu_item"]
        if not views:
            return []
        frame = pd.DataFrame(views, columns=["id", "name"])
        counts = (
            frame.groupby("id", sort=False)
            .agg(name=("name", "first"), count=("name", "size"))
            .sort_values("count", ascending=False, kind="stable")
            .head(limit)
        )
        return [{"id": item_id, "name": row["name"], "count": int(row["count"])} for item_id, row in counts.iterrows()]

    def get_order_history(self):
        return list(self.data["orders"])

    def get_time_patterns(self):
        return {int(hour): count for hour, count in self.data["time_patterns"].items()}

    def clear(self):
        self.data = _empty_data()
        self._save()
