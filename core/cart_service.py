# core/cart_service.py
from collections import OrderedDict

from core.local_storage import CART_KEY
from models.cart import CartItem


class CartStore:
    """
    Multi-restaurant cart persisted under 'customer-cart'.

    Lines are keyed by (item id, restaurant id). `restaurant_id` is the
    primary restaurant kept for single-restaurant checkout code; it is not
    used for totals.
    """

    def __init__(self, storage=None):
        self.storage = storage
        self.items = []
        self.restaurant_id = None
        self._load()

    def _load(self):
        if self.storage is None:
            return
        data = self.storage.load(CART_KEY, default={}) or {}
        items = []
        for raw in data.get("items", []):
            try:
                items.append(CartItem.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                print(f"⚠️ Skipping invalid cart line: {e}")
        self.items = items
        self.restaurant_id = data.get("restaurant_id")
        if self.restaurant_id not in self.get_restaurant_ids():
            self.restaurant_id = self.items[0].restaurant_id if self.items else None

    def _save(self):
        if self.storage is not None:
            self.storage.save(CART_KEY, {
                "items": [item.to_dict() for item in self.items],
                "restaurant_id": self.restaurant_id,
            })

    def _find(self, item_id, restaurant_id):
        key = (str(item_id), str(restaurant_id))
        for item in self.items:
            if item.key == key:
                return item
        return None

    def add_item(self, item: CartItem) -> CartItem:
        """Add item to cart or update quantity if the same (id, restaurant) exists"""
        existing = self._find(item.id, item.restaurant_id)
        if existing:
            existing.quantity += item.quantity
            line = existing
        else:
            line = CartItem(**item.to_dict())
            self.items.append(line)
        if self.restaurant_id is None:
            self.restaurant_id = item.restaurant_id
        self._save()
        return line

    def remove_item(self, item_id, restaurant_id) -> bool:
        """Remove one line; ids are only unique within a restaurant"""
        line = self._find(item_id, restaurant_id)
        if line is None:
            return False
        self.items.remove(line)
        remaining = self.get_restaurant_ids()
        if self.restaurant_id not in remaining:
            self.restaurant_id = remaining[0] if remaining else None
        self._save()
        return True

    def update_quantity(self, item_id, restaurant_id, quantity: int) -> bool:
        """Set line quantity; zero or less removes the line"""
        line = self._find(item_id, restaurant_id)
        if line is None:
            return False
        if quantity <= 0:
            return self.remove_item(item_id, restaurant_id)
        line.quantity = int(quantity)
        self._save()
        return True

    def clear(self):
        self.items = []
        self.restaurant_id = None
        self._save()

    def get_total(self) -> float:
        return round(sum(item.price * item.quantity for item in self.items), 2)

    def get_count(self) -> int:
        """Get total number of items in cart"""
        return sum(item.quantity for item in self.items)

    def get_restaurant_ids(self):
        return list(OrderedDict.fromkeys(item.restaurant_id for item in self.items))

    def get_items_by_restaurant(self, restaurant_id):
        return [item for item in self.items if item.restaurant_id == str(restaurant_id)]

    def group_by_restaurant(self):
        """restaurant id -> lines, in first-added order"""
        groups = OrderedDict()
        for item in self.items:
            groups.setdefault(item.restaurant_id, []).append(item)
        return groups

    def is_empty(self) -> bool:
        return not self.items
