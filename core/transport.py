# core/transport.py
"""
Realtime connection to the order service (socket.io).

One OrderEventClient per authenticated session. Connection failures never
raise: the client stays disconnected and callers check is_connected().
Reconnection is left to python-socketio; after a reconnect there is no
replay, so consumers should refetch (see on_connection_change).
"""
import threading
from collections import Counter
from functools import partial

import socketio

from core.config import RECONNECT_ATTEMPTS, RECONNECT_DELAY, RECONNECT_DELAY_MAX
from core.subscription_router import Subscription, SubscriptionRouter
from models.event import EVENT_ALIASES, EVENT_TYPES, OrderEvent
from models.order import normalize_order_id

# principal type -> (room join message, id field in its payload)
ROOM_JOIN = {
    "customer": ("join_customer", "customerId"),
    "delivery": ("join_delivery", "deliveryPartnerId"),
    "restaurant": ("join_restaurant", "restaurantId"),
    "admin": ("join_admin", None),
}

SERVER_EVENTS = tuple(EVENT_TYPES) + tuple(EVENT_ALIASES)


def _default_socket_factory(**options):
    return socketio.Client(**options)


class OrderEventClient:
    def __init__(self, router=None, socket_factory=None,
                 reconnection_attempts=RECONNECT_ATTEMPTS,
                 reconnection_delay=RECONNECT_DELAY,
                 reconnection_delay_max=RECONNECT_DELAY_MAX):
        self.router = router or SubscriptionRouter()
        self._socket_factory = socket_factory or _default_socket_factory
        self._socket_options = {
            "reconnection": True,
            "reconnection_attempts": reconnection_attempts,
            "reconnection_delay": reconnection_delay,
            "reconnection_delay_max": reconnection_delay_max,
        }
        self._socket = None
        self._connecting = False
        self._lock = threading.Lock()
        self._connection_listeners = []
        self._subscribed_orders = Counter()

        self.endpoint_url = None
        self.auth_token = None
        self.principal_id = None
        self.principal_type = "customer"

    # ===================== CONNECTION =====================

    def initialize(self, endpoint_url: str, auth_token: str, principal_id=None, principal_type: str = "customer"):
        """
        Connect once per session and return self.

        Calling again with the same settings while connected (or connecting)
        does nothing. New settings replace the old connection; listeners are kept.
        """
        if principal_type not in ROOM_JOIN:
            raise ValueError(f"Unknown principal type: {principal_type!r}")
        principal_id = str(principal_id) if principal_id is not None else None
        settings = (endpoint_url, auth_token, principal_id, principal_type)

        with self._lock:
            current = (self.endpoint_url, self.auth_token, self.principal_id, self.principal_type)
            busy = self._connecting or (self._socket is not None and self._socket.connected)
            if busy and settings == current:
                return self
            old_socket = self._socket
            self._socket = None
            self.endpoint_url, self.auth_token, self.principal_id, self.principal_type = settings

        if old_socket is not None:
            self._close_socket(old_socket)
        self._connect()
        return self

    def _connect(self):
        with self._lock:
            if self._connecting:
                return
            self._connecting = True
            sock = self._socket_factory(**self._socket_options)
            self._socket = sock

        sock.on("connect", handler=self._on_connect)
        sock.on("disconnect", handler=self._on_disconnect)
        sock.on("connect_error", handler=self._on_connect_error)
        for name in SERVER_EVENTS:
            sock.on(name, handler=partial(self._handle_server_event, name))

        try:
            sock.connect(
                self.endpoint_url,
                auth={"token": self.auth_token},
                transports=["websocket", "polling"],
            )
        except Exception as e:
            print(f"🔴 WebSocket connection error: {e}")
        finally:
            with self._lock:
                self._connecting = False

    def _close_socket(self, sock):
        try:
            sock.disconnect()
        except Exception as e:
            print(f"WebSocket close error: {e}")

    def is_connected(self) -> bool:
        sock = self._socket
        return bool(sock is not None and sock.connected)

    def disconnect(self):
        """Close the connection and drop every listener."""
        with self._lock:
            sock = self._socket
            self._socket = None
            self._connecting = False
        if sock is not None:
            self._close_socket(sock)
        self.router.clear()
        self._connection_listeners.clear()
        self._subscribed_orders.clear()

    def update_token(self, auth_token: str, principal_id=None):
        """Swap credentials; reconnects only if currently connected."""
        was_connected = self.is_connected()
        self.auth_token = auth_token
        if principal_id is not None:
            self.principal_id = str(principal_id)
        if was_connected:
            with self._lock:
                sock = self._socket
                self._socket = None
            self._close_socket(sock)
            self._connect()

    # ===================== SOCKET HANDLERS =====================

    def _on_connect(self):
        print(f"✅ WebSocket connected to {self.endpoint_url}")
        self._join_principal_room()
        # socketio sets Client.connected only after this handler returns
        for order_id in sorted(self.subscribed_orders()):
            self._emit("subscribe_order", {"orderId": order_id}, require_connected=False)
        self._notify_connection(True)

    def _on_disconnect(self, reason=None):
        print(f"🔴 WebSocket disconnected: {reason or 'unknown reason'}")
        self._notify_connection(False)

    def _on_connect_error(self, data=None):
        print(f"⚠️ WebSocket connection error: {data}")

    def _join_principal_room(self):
        message, id_field = ROOM_JOIN[self.principal_type]
        payload = {"token": self.auth_token}
        if id_field is not None:
            if self.principal_id is None:
                return
            payload[id_field] = self.principal_id
        self._emit(message, payload, require_connected=False)

    def _handle_server_event(self, name, *args):
        data = args[0] if args else None
        try:
            event = OrderEvent.from_payload(name, data)
        except ValueError as e:
            print(f"⚠️ Dropped '{name}' event: {e}")
            return
        self.router.publish(event)

    def _emit(self, message, payload, require_connected=True) -> bool:
        sock = self._socket
        if sock is None or (require_connected and not sock.connected):
            return False
        try:
            sock.emit(message, payload)
            return True
        except Exception as e:
            print(f"WebSocket emit error ({message}): {e}")
            return False

    # ===================== LISTENERS =====================

    def on(self, event_type: str, callback) -> Subscription:
        """Register a callback for a canonical event type; returns its disposer."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown order event type: {event_type!r}")
        return self.router.on(event_type, callback)

    def off(self, event_type: str, callback) -> bool:
        return self.router.off(event_type, callback)

    def on_connection_change(self, callback) -> Subscription:
        """callback(connected: bool) after every connect and disconnect."""
        self._connection_listeners.append(callback)

        def release():
            if callback in self._connection_listeners:
                self._connection_listeners.remove(callback)

        return Subscription(release)

    def _notify_connection(self, connected: bool):
        for callback in list(self._connection_listeners):
            try:
                callback(connected)
            except Exception as e:
                print(f"Error in connection listener: {e}")

    # ===================== ORDER ROOMS =====================

    def subscribe_to_order(self, order_id) -> Subscription:
        """
        Ask the server for events about one order. Optimization only.

        Subscriptions are counted per order id; the room is left when the
        last returned disposer (or matching unsubscribe call) releases it.
        """
        key = normalize_order_id(order_id)
        with self._lock:
            self._subscribed_orders[key] += 1
            first = self._subscribed_orders[key] == 1
        if first:
            self._emit("subscribe_order", {"orderId": key})
        return Subscription(lambda: self.unsubscribe_from_order(key))

    def unsubscribe_from_order(self, order_id):
        key = normalize_order_id(order_id)
        with self._lock:
            remaining = self._subscribed_orders[key] - 1
            if remaining > 0:
                self._subscribed_orders[key] = remaining
            else:
                self._subscribed_orders.pop(key, None)
        if remaining <= 0:
            self._emit("unsubscribe_order", {"orderId": key})

    def subscribed_orders(self):
        with self._lock:
            return set(self._subscribed_orders)
