# core/order_store.py
"""
Local copy of the orders visible to the current session.

Reducers are idempotent and never move a status backward: the only
backward-looking move is cancellation, which is allowed from any
non-terminal state and is terminal afterwards. Unknown ids are dropped.
"""
import threading
from datetime import datetime

from core.order_views import build_view
from core.subscription_router import Subscription, SubscriptionScope
from models.event import (
    DELIVERY_ASSIGNED, DELIVERY_PICKED_UP, ORDER_CANCELLED,
    ORDER_CREATED, ORDER_DELIVERED, ORDER_STATUS_CHANGED,
)
from models.order import Order, OrderStatus, is_forward_move, normalize_order_id, parse_status


def _key(order_id):
    try:
        return normalize_order_id(order_id)
    except ValueError:
        return None


class OrderStore:
    def __init__(self, orders=None):
        self._orders = list(orders or [])
        self._lock = threading.RLock()
        self._listeners = []

    # ===================== QUERIES =====================

    def orders(self):
        with self._lock:
            return list(self._orders)

    def count(self) -> int:
        with self._lock:
            return len(self._orders)

    def get(self, order_id):
        key = _key(order_id)
        with self._lock:
            return self._find(key)

    def view(self, bucket: str = "all", query: str = "", sort: str = "recent"):
        return build_view(self.orders(), bucket=bucket, query=query, sort=sort)

    def _find(self, key):
        for order in self._orders:
            if order.id == key:
                return order
        return None

    # ===================== REDUCERS =====================

    def apply_created(self, order: Order) -> bool:
        """Prepend a newly observed order; an id already present is left alone."""
        with self._lock:
            if self._find(order.id) is not None:
                return False
            self._orders.insert(0, order)
        self._notify(order)
        return True

    def apply_status_change(self, order_id, new_status) -> bool:
        key = _key(order_id)
        try:
            status = parse_status(new_status)
        except ValueError as e:
            print(f"⚠️ Ignored status change for order {key}: {e}")
            return False
        if status == OrderStatus.CANCELLED:
            return self.apply_cancelled(key)

        with self._lock:
            order = self._find(key)
            if order is None or order.status == status:
                return False
            if not is_forward_move(order.status, status):
                print(f"⚠️ Rejected status change for order {key}: {order.status.value} -> {status.value}")
                return False
            order.status = status
            order.updated_at = datetime.utcnow()
        self._notify(order)
        return True

    def apply_cancelled(self, order_id) -> bool:
        """Force cancelled from any non-terminal state."""
        key = _key(order_id)
        with self._lock:
            order = self._find(key)
            if order is None or order.is_terminal:
                return False
            order.status = OrderStatus.CANCELLED
            order.updated_at = datetime.utcnow()
        self._notify(order)
        return True

    def apply_delivery_assigned(self, order_id, partner_id) -> bool:
        key = _key(order_id)
        with self._lock:
            order = self._find(key)
            if order is None or order.is_terminal or partner_id is None:
                return False
            if order.delivery_partner_id == str(partner_id):
                return False
            order.delivery_partner_id = str(partner_id)
            order.updated_at = datetime.utcnow()
        self._notify(order)
        return True

    def apply_picked_up(self, order_id, partner_id=None) -> bool:
        if partner_id is not None:
            self.apply_delivery_assigned(order_id, partner_id)
        return self.apply_status_change(order_id, OrderStatus.PICKED_UP)

    def apply_delivered(self, order_id) -> bool:
        return self.apply_status_change(order_id, OrderStatus.DELIVERED)

    def apply_event(self, event) -> bool:
        """Route one normalized OrderEvent to its reducer."""
        if event.type == ORDER_CREATED:
            if not event.order:
                return False
            try:
                order = Order.from_payload(event.order)
            except (ValueError, TypeError) as e:
                print(f"⚠️ Dropped malformed order {event.order_id}: {e}")
                return False
            if self.apply_created(order):
                return True
            return self.apply_status_change(order.id, order.status)
        if event.type == ORDER_STATUS_CHANGED:
            if event.status is None:
                return False
            return self.apply_status_change(event.order_id, event.status)
        if event.type == DELIVERY_ASSIGNED:
            return self.apply_delivery_assigned(event.order_id, event.delivery_partner_id)
        if event.type == DELIVERY_PICKED_UP:
            return self.apply_picked_up(event.order_id, event.delivery_partner_id)
        if event.type == ORDER_DELIVERED:
            return self.apply_delivered(event.order_id)
        if event.type == ORDER_CANCELLED:
            return self.apply_cancelled(event.order_id)
        return False

    def bind(self, source) -> SubscriptionScope:
        """Feed every order event from a transport client or router into this store."""
        scope = SubscriptionScope()
        for event_type in (ORDER_CREATED, ORDER_STATUS_CHANGED, DELIVERY_ASSIGNED,
                           DELIVERY_PICKED_UP, ORDER_DELIVERED, ORDER_CANCELLED):
            scope.add(source.on(event_type, self.apply_event))
        return scope

    def reconcile(self, snapshot) -> int:
        """
        Merge a full refetch into the local list.

        Snapshot orders replace local ones, except that a local status further
        along the lifecycle wins. Local orders missing from the snapshot are
        kept in front (they arrived after the fetch started).
        """
        with self._lock:
            local = {order.id: order for order in self._orders}
            merged = []
            seen = set()
            for incoming in snapshot:
                if incoming.id in seen:
                    continue
                seen.add(incoming.id)
                current = local.get(incoming.id)
                if current is not None and current.status != incoming.status \
                        and not is_forward_move(current.status, incoming.status):
                    incoming.status = current.status
                merged.append(incoming)
            local_only = [order for order in self._orders if order.id not in seen]
            self._orders = local_only + merged
            total = len(self._orders)
        self._notify(None)
        return total

    def clear(self):
        with self._lock:
            self._orders = []
        self._notify(None)

    # ===================== CHANGE LISTENERS =====================

    def subscribe(self, listener) -> Subscription:
        """listener(order or None) after every applied change."""
        self._listeners.append(listener)

        def release():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(release)

    def _notify(self, order):
        for listener in list(self._listeners):
            try:
                listener(order)
            except Exception as e:
                print(f"Error in order store listener: {e}")
