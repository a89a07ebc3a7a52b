# core/subscription_router.py
"""
Fan-out of normalized order events to local callbacks.

Every registration returns a Subscription; callers must dispose it when the
consumer goes away (screen closed, task finished). Nothing here enforces
that. SubscriptionScope releases a group of subscriptions at once.
"""
import threading
from typing import Callable, Optional

from models.order import normalize_order_id


class Subscription:
    """Disposer handle: call it (or use `with`) to stop receiving events."""

    def __init__(self, release: Callable[[], None]):
        self._release = release
        self._lock = threading.Lock()
        self.active = True

    def dispose(self):
        with self._lock:
            if not self.active:
                return
            self.active = False
        self._release()

    __call__ = dispose

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()


class SubscriptionScope:
    """Collects disposers and releases them together on close()."""

    def __init__(self):
        self._disposers = []
        self.closed = False

    def add(self, disposer):
        if self.closed:
            # the owner is already gone; release right away
            disposer()
            return disposer
        self._disposers.append(disposer)
        return disposer

    def close(self):
        self.closed = True
        while self._disposers:
            self._disposers.pop()()

    def __len__(self):
        return len(self._disposers)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class _Entry:
    __slots__ = ("callback", "order_id", "event_types")

    def __init__(self, callback, order_id=None, event_types=None):
        self.callback = callback
        self.order_id = order_id
        self.event_types = event_types

    def matches(self, event) -> bool:
        if self.order_id is not None and self.order_id != event.order_id:
            return False
        if self.event_types is not None and event.type not in self.event_types:
            return False
        return True


class SubscriptionRouter:
    def __init__(self):
        self._by_type = {}      # event type -> [_Entry] in registration order
        self._by_order = {}     # order id -> [_Entry]
        self._lock = threading.Lock()

    def on(self, event_type: str, callback: Callable) -> Subscription:
        """Register callback for every event of event_type."""
        entry = _Entry(callback)
        with self._lock:
            self._by_type.setdefault(event_type, []).append(entry)
        return Subscription(lambda: self._remove(self._by_type, event_type, entry))

    def on_order(self, order_id, callback: Callable, event_types=None) -> Subscription:
        """Register callback for events about one order (optionally only some types)."""
        key = normalize_order_id(order_id)
        entry = _Entry(callback, order_id=key, event_types=frozenset(event_types) if event_types else None)
        with self._lock:
            self._by_order.setdefault(key, []).append(entry)
        return Subscription(lambda: self._remove(self._by_order, key, entry))

    def off(self, event_type: str, callback: Callable) -> bool:
        with self._lock:
            entries = self._by_type.get(event_type, [])
            for entry in entries:
                if entry.callback == callback:
                    entries.remove(entry)
                    if not entries:
                        self._by_type.pop(event_type, None)
                    return True
        return False

    def publish(self, event) -> int:
        """
        Invoke every matching callback once, in registration order.

        Type listeners run before per-order listeners. A callback that is
        registered more than once still sees the event only once. Returns
        the number of callbacks invoked.
        """
        with self._lock:
            entries = list(self._by_type.get(event.type, ())) + list(self._by_order.get(event.order_id, ()))

        delivered = 0
        seen = []
        for entry in entries:
            # bound methods fetched twice are equal but not identical
            if not entry.matches(event) or any(entry.callback == cb for cb in seen):
                continue
            seen.append(entry.callback)
            try:
                entry.callback(event)
            except Exception as e:
                print(f"Error in listener for {event.type}: {e}")
            delivered += 1
        return delivered

    def listener_count(self, event_type: Optional[str] = None) -> int:
        with self._lock:
            if event_type is not None:
                return len(self._by_type.get(event_type, ()))
            return sum(len(v) for v in self._by_type.values()) + sum(len(v) for v in self._by_order.values())

    def watched_orders(self):
        with self._lock:
            return set(self._by_order)

    def clear(self):
        with self._lock:
            self._by_type.clear()
            self._by_order.clear()

    def _remove(self, table: dict, key, entry):
        with self._lock:
            entries = table.get(key)
            if not entries:
                return
            try:
                entries.remove(entry)
            except ValueError:
                return
            if not entries:
                table.pop(key, None)
