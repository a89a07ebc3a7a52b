import pytest

from conftest import FakeResponse, order_payload
from core.app_context import build_context
from core.behavior_tracker import BehaviorTracker
from core.cart_service import CartStore
from core.logger import recent_actions
from core.notifications import NotificationCenter
from core.order_api import OrderApiClient
from core.order_store import OrderStore
from core.sync_service import OrderSyncService
from core.task_store import DeliveryTaskStore
from models.cart import CartItem
from models.order import OrderStatus


@pytest.fixture
def sync(client, http, storage, session_factory):
    return OrderSyncService(
        OrderApiClient("http://orders", session=http),
        OrderStore(),
        client,
        NotificationCenter(),
        tracker=BehaviorTracker(storage),
        audit_session_factory=session_factory,
    )


def test_start_loads_orders_once_connected(sync, http, sockets):
    http.queue(FakeResponse(200, [order_payload(1), order_payload(2, status="ready")]))
    sync.start("http://orders", "tok", "7")

    assert sync.transport.is_connected()
    assert [o.id for o in sync.store.orders()] == ["1", "2"]
    assert len(http.calls) == 1
    assert http.calls[0]["headers"]["Authorization"] == "Bearer tok"


def test_events_update_store_and_raise_toasts(sync, http, sockets):
    http.queue(FakeResponse(200, [order_payload(1)]))
    sync.start("http://orders", "tok", "7")

    sockets.last.server_event("order_status_changed", {"orderId": 1, "status": "confirmed"})
    sockets.last.server_event("order_status_changed", {"orderId": 99, "status": "confirmed"})

    assert sync.store.get(1).status == OrderStatus.CONFIRMED
    toasts = sync.notifications.items()
    assert len(toasts) == 1
    assert toasts[0].message == "Order status updated"
    assert toasts[0].order_id == "1"


def test_cancel_toast_only_for_known_orders(sync, http, sockets):
    http.queue(FakeResponse(200, [order_payload(1, status="preparing")]))
    sync.start("http://orders", "tok", "7")
    sockets.last.server_event("order_cancelled", {"orderId": 5, "reason": "no stock"})
    assert sync.notifications.items() == []

    sockets.last.server_event("order_cancelled", {"orderId": 1})
    assert sync.store.get(1).status == OrderStatus.CANCELLED
    assert sync.notifications.items()[0].level == "error"


def test_reconnect_refetches_and_keeps_newer_local_status(sync, http, sockets):
    http.queue(FakeResponse(200, [order_payload(1)]))
    sync.start("http://orders", "tok", "7")
    sockets.last.server_event("order_status_changed", {"orderId": 1, "status": "preparing"})

    sockets.last.drop()
    http.queue(FakeResponse(200, [order_payload(1, status="confirmed"), order_payload(3)]))
    sockets.last.reconnect()

    assert len(http.calls) == 2
    assert sync.store.get(1).status == OrderStatus.PREPARING
    assert sync.store.get(3) is not None


def test_offline_start_still_fetches(sync, http, sockets):
    sockets.fail = True
    http.queue(FakeResponse(200, [order_payload(1)]))
    sync.start("http://orders", "tok", "7")
    assert not sync.transport.is_connected()
    assert sync.store.count() == 1


def test_fetch_failure_becomes_error_toast(sync, http):
    http.queue(FakeResponse(500, {"message": "database unavailable"}, reason="Server Error"))
    sync.start("http://orders", "tok", "7")

    assert sync.store.count() == 0
    toast = sync.notifications.items()[0]
    assert toast.level == "error"
    assert toast.message == "Failed to load orders"
    assert "database unavailable" in toast.description


def test_update_status_applies_locally_and_audits(sync, http, session_factory):
    http.queue(FakeResponse(200, [order_payload(42)]))
    sync.start("http://orders", "tok", "r1", principal_type="restaurant")
    http.queue(FakeResponse(200, order_payload(42, status="confirmed")))

    assert sync.update_status(42, "confirmed", actor="staff@r1")
    assert http.calls[-1]["method"] == "PATCH"
    assert http.calls[-1]["json"] == {"status": "confirmed"}
    assert sync.store.get(42).status == OrderStatus.CONFIRMED
    assert recent_actions(session_factory=session_factory)[0].action == "Updated order 42 to confirmed"
    assert sync.notifications.items()[0].message == "Order updated"


def test_rejected_update_leaves_store_untouched(sync, http):
    http.queue(FakeResponse(200, [order_payload(42)]))
    sync.start("http://orders", "tok", "r1", principal_type="restaurant")
    http.queue(FakeResponse(409, {"message": "Invalid transition"}, reason="Conflict"))

    assert not sync.update_status(42, "delivered")
    assert sync.store.get(42).status == OrderStatus.PENDING
    assert "Invalid transition" in sync.notifications.items()[0].description


def test_unknown_status_is_not_sent(sync, http):
    assert not sync.update_status(42, "teleported")
    assert http.calls == []
    assert sync.notifications.items()[0].message == "Invalid order status"


def _cart(storage):
    cart = CartStore(storage)
    cart.add_item(CartItem("i1", "Paneer Tikka", 100.0, "r1", "Spice Route", quantity=2))
    cart.add_item(CartItem("i9", "Dumplings", 50.0, "r2", "Jade Garden"))
    return cart


def test_place_order_creates_one_order_per_restaurant(sync, http, storage, session_factory):
    cart = _cart(storage)
    http.queue(
        FakeResponse(201, order_payload(100)),
        FakeResponse(201, order_payload(101, restaurantId="r2", restaurantName="Jade Garden")),
    )

    created = sync.place_order(cart, delivery_address="12 MG Road", delivery_fee=20.0, tax_rate=0.05)

    assert [o.id for o in created] == ["100", "101"]
    first, second = (call["json"] for call in http.calls)
    assert first["restaurantId"] == "r1"
    assert first["subtotal"] == 200.0
    assert first["tax"] == 10.0
    assert first["total"] == 230.0
    assert second["restaurantId"] == "r2"
    assert cart.is_empty()
    assert [o.id for o in sync.store.orders()] == ["101", "100"]
    assert sync.transport.subscribed_orders() == {"100", "101"}
    assert len(sync.tracker.get_order_history()) == 2
    assert len(recent_actions(session_factory=session_factory)) == 2


def test_failed_restaurant_order_keeps_its_lines(sync, http, storage):
    cart = _cart(storage)
    http.queue(FakeResponse(201, order_payload(100)), FakeResponse(503, None, reason="Unavailable"))

    created = sync.place_order(cart)

    assert [o.id for o in created] == ["100"]
    assert cart.get_restaurant_ids() == ["r2"]
    assert [n.message for n in sync.notifications.items()] == ["Order placed", "Failed to place order"]


def test_track_order_scope(sync, http, sockets):
    sync.start("http://orders", "tok", "7")
    seen = []
    scope = sync.track_order(42, seen.append)
    assert ("subscribe_order", {"orderId": "42"}) in sockets.last.emitted

    sockets.last.server_event("order_delivered", {"orderId": 42})
    scope.close()
    sockets.last.server_event("order_delivered", {"orderId": 42})

    assert len(seen) == 1
    assert ("unsubscribe_order", {"orderId": "42"}) in sockets.last.emitted
    assert "42" not in sync.transport.subscribed_orders()


def test_stop_disconnects_and_releases_listeners(sync, sockets):
    sync.start("http://orders", "tok", "7")
    sync.stop()
    assert not sync.transport.is_connected()
    assert sync.transport.router.listener_count() == 0


def test_delivery_context_tracks_assigned_tasks(session_factory, sockets, http):
    ctx = build_context(session_factory=session_factory, socket_factory=sockets, http_session=http,
                        base_url="http://orders", principal_type="delivery", principal_id="d1")
    assert isinstance(ctx.tasks, DeliveryTaskStore)
    http.queue(FakeResponse(200, [order_payload(7, status="ready"), order_payload(8, status="preparing")]))
    ctx.sync.start("http://orders", "tok", "d1", principal_type="delivery")

    assert [t.id for t in ctx.tasks.available_tasks()] == ["7"]
    sockets.last.server_event("delivery_assigned", {
        "orderId": 9, "deliveryPartnerId": "d1", "order": order_payload(9, status="ready"),
    })
    assert [t.id for t in ctx.tasks.available_tasks()] == ["9", "7"]
    assert ctx.notifications.items()[0].message == "Delivery partner assigned"


def test_customer_context_has_no_task_store(session_factory, sockets, http):
    ctx = build_context(session_factory=session_factory, socket_factory=sockets, http_session=http)
    assert ctx.tasks is None
    assert ctx.cart.is_empty()


def test_refresh_skips_malformed_rows(sync, http):
    http.queue(FakeResponse(200, [{"status": "ready"}, order_payload(2)]))
    assert sync.refresh()
    assert [o.id for o in sync.store.orders()] == ["2"]


def test_offline_start_with_unreadable_list_does_not_raise(sync, http, sockets):
    sockets.fail = True
    http.queue(FakeResponse(200, "maintenance"))
    sync.start("http://orders", "tok", "7")
    assert sync.store.count() == 0
    assert sync.notifications.items()[0].message == "Failed to load orders"


def test_unreadable_placed_order_still_clears_its_lines(sync, http, storage):
    cart = _cart(storage)
    http.queue(FakeResponse(201, order_payload(100)), FakeResponse(201, order_payload(101, status="weird")))

    created = sync.place_order(cart)

    assert [o.id for o in created] == ["100"]
    assert cart.is_empty()
    assert [n.level for n in sync.notifications.items()] == ["success", "warning"]


def test_unreadable_status_echo_still_updates_store(sync, http):
    http.queue(FakeResponse(200, [order_payload(42)]))
    sync.start("http://orders", "tok", "r1", principal_type="restaurant")
    http.queue(FakeResponse(200, {"id": 42, "status": "weird"}))

    assert sync.update_status(42, "confirmed")
    assert sync.store.get(42).status == OrderStatus.CONFIRMED
    assert sync.notifications.items()[0].message == "Order updated"
