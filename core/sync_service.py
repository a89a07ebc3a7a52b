# core/sync_service.py
"""
Application shell for one session: REST fetches, realtime events and the
local stores kept in step. Every failure ends as a toast and a fallback
value; nothing here raises to the caller.
"""
from core.logger import log_action
from core.order_api import OrderApiError, OrderPayloadError
from core.subscription_router import SubscriptionScope
from models.event import (
    DELIVERY_ASSIGNED, ORDER_CANCELLED, ORDER_DELIVERED, ORDER_STATUS_CHANGED,
)
from models.order import parse_status


def _short(order_id) -> str:
    return str(order_id)[-6:]


def _remove_lines(cart, lines):
    for line in lines:
        cart.remove_item(line.id, line.restaurant_id)


class OrderSyncService:
    def __init__(self, api, store, transport, notifications, task_store=None,
                 tracker=None, audit_session_factory=None):
        self.api = api
        self.store = store
        self.transport = transport
        self.notifications = notifications
        self.task_store = task_store
        self.tracker = tracker
        self.audit_session_factory = audit_session_factory
        self._scope = None

    # ===================== LIFECYCLE =====================

    def start(self, endpoint_url, auth_token, principal_id=None, principal_type="customer"):
        if self._scope is not None:
            self._scope.close()
        self.api.token = auth_token
        scope = SubscriptionScope()
        scope.add(self.store.bind(self.transport).close)
        if self.task_store is not None:
            scope.add(self.task_store.bind(self.transport).close)
        scope.add(self.transport.on_connection_change(self._on_connection_change))
        scope.add(self.transport.on(ORDER_STATUS_CHANGED, self._toast_status))
        scope.add(self.transport.on(DELIVERY_ASSIGNED, self._toast_assigned))
        scope.add(self.transport.on(ORDER_DELIVERED, self._toast_delivered))
        scope.add(self.transport.on(ORDER_CANCELLED, self._toast_cancelled))
        self._scope = scope

        self.transport.initialize(endpoint_url, auth_token, principal_id, principal_type)
        if not self.transport.is_connected():
            # offline: still show what the REST surface has
            self.refresh()
        return self

    def stop(self):
        if self._scope is not None:
            self._scope.close()
            self._scope = None
        self.transport.disconnect()

    def _on_connection_change(self, connected: bool):
        # No replay after a drop: the full refetch is the resync
        if connected:
            self.refresh()

    # ===================== REST =====================

    def refresh(self) -> bool:
        try:
            orders = self.api.list_orders()
        except OrderApiError as e:
            self._report(e, "Failed to load orders")
            return False
        self.store.reconcile(orders)
        if self.task_store is not None:
            self.task_store.set_available_tasks(orders)
        return True

    def update_status(self, order_id, status, actor: str = "") -> bool:
        try:
            new_status = parse_status(status)
        except ValueError as e:
            self._report(e, "Invalid order status")
            return False
        try:
            self.api.update_status(order_id, new_status)
        except OrderPayloadError as e:
            # change was accepted; only the echoed order is unreadable
            print(f"⚠️ Order {order_id} updated, response ignored: {e}")
        except OrderApiError as e:
            self._report(e, "Failed to update order status", order_id)
            return False
        self.store.apply_status_change(order_id, new_status)
        log_action(actor, f"Updated order {order_id} to {new_status.value}", order_id,
                   session_factory=self.audit_session_factory)
        self.notifications.push("success", "Order updated", f"Order #{_short(order_id)} is now {new_status.value}", order_id)
        return True

    def place_order(self, cart, delivery_address: str = "", payment_method: str = "card",
                    delivery_fee: float = 0.0, tax_rate: float = 0.0, actor: str = ""):
        """
        Place one order per restaurant in the cart.

        Returns the created orders. Lines are removed from the cart once
        their restaurant's order is accepted, even when the response
        cannot be read; the first rejected request stops and leaves the
        remaining lines in the cart.
        """
        created = []
        for restaurant_id, lines in cart.group_by_restaurant().items():
            subtotal = round(sum(line.line_total for line in lines), 2)
            payload = {
                "restaurantId": restaurant_id,
                "items": [
                    {"id": line.id, "name": line.name, "price": line.price, "quantity": line.quantity,
                     "restaurantId": line.restaurant_id, "restaurantName": line.restaurant_name}
                    for line in lines
                ],
                "subtotal": subtotal,
                "discount": 0.0,
                "deliveryFee": delivery_fee,
                "tax": round(subtotal * tax_rate, 2),
                "total": round(max(0.0, subtotal + delivery_fee + subtotal * tax_rate), 2),
                "deliveryAddress": delivery_address,
                "paymentMethod": payment_method,
            }
            try:
                order = self.api.place_order(payload)
            except OrderPayloadError as e:
                print(f"⚠️ Order for restaurant {restaurant_id} placed, response unreadable: {e}")
                log_action(actor, f"Placed order for restaurant {restaurant_id}",
                           session_factory=self.audit_session_factory)
                self.notifications.push("warning", "Order placed", "Order details will appear after the next refresh")
                _remove_lines(cart, lines)
                continue
            except OrderApiError as e:
                self._report(e, "Failed to place order")
                break
            if not order.restaurant_name:
                order.restaurant_name = lines[0].restaurant_name
            self.store.apply_created(order)
            self.transport.subscribe_to_order(order.id)
            log_action(actor, f"Placed order {order.id}", order.id, session_factory=self.audit_session_factory)
            if self.tracker is not None:
                self.tracker.track_order(order.id, restaurant_id, lines[0].restaurant_name,
                                         [line.to_dict() for line in lines], order.total)
            _remove_lines(cart, lines)
            created.append(order)

        if created:
            self.notifications.push("success", "Order placed", f"{len(created)} order(s) placed")
        return created

    def track_order(self, order_id, callback=None) -> SubscriptionScope:
        """Follow one order until the returned scope is closed."""
        scope = SubscriptionScope()
        scope.add(self.transport.subscribe_to_order(order_id))
        if callback is not None:
            scope.add(self.transport.router.on_order(order_id, callback))
        return scope

    # ===================== TOASTS =====================

    def _report(self, error, message, order_id=None):
        print(f"[ERROR] {message}: {error}")
        self.notifications.push("error", message, str(error), order_id)

    def _toast_status(self, event):
        if event.status is None or self.store.get(event.order_id) is None:
            return
        self.notifications.push("info", "Order status updated",
                                f"Order #{_short(event.order_id)} is {event.status}", event.order_id)

    def _toast_assigned(self, event):
        self.notifications.push("success", "Delivery partner assigned",
                                f"Order #{_short(event.order_id)}", event.order_id)

    def _toast_delivered(self, event):
        self.notifications.push("success", "Order delivered",
                                f"Order #{_short(event.order_id)} has been delivered", event.order_id)

    def _toast_cancelled(self, event):
        if self.store.get(event.order_id) is None:
            return
        self.notifications.push("error", "Order cancelled",
                                f"Order #{_short(event.order_id)} has been cancelled", event.order_id)
