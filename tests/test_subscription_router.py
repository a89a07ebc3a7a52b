from core.subscription_router import SubscriptionScope
from models.event import OrderEvent


def make_event(event_type="order_status_changed", order_id="1", **kw):
    return OrderEvent(type=event_type, order_id=order_id, **kw)


def test_callbacks_run_in_registration_order(router):
    calls = []
    router.on("order_status_changed", lambda e: calls.append("first"))
    router.on("order_status_changed", lambda e: calls.append("second"))
    router.on("order_created", lambda e: calls.append("other type"))

    assert router.publish(make_event()) == 2
    assert calls == ["first", "second"]


def test_disposer_stops_delivery_and_is_idempotent(router):
    calls = []
    sub = router.on("order_cancelled", calls.append)
    sub()
    sub()
    router.publish(make_event("order_cancelled"))
    assert calls == []
    assert router.listener_count() == 0


def test_order_scoped_listener_ignores_other_orders(router):
    seen = []
    router.on_order(42, seen.append)
    router.publish(make_event(order_id="41"))
    router.publish(make_event(order_id=42))
    assert [e.order_id for e in seen] == ["42"]


def test_order_scoped_listener_can_filter_types(router):
    seen = []
    router.on_order("9", seen.append, event_types=["order_delivered"])
    router.publish(make_event("order_status_changed", "9"))
    router.publish(make_event("order_delivered", "9"))
    assert [e.type for e in seen] == ["order_delivered"]


def test_same_callback_registered_twice_sees_event_once(router):
    seen = []
    router.on("order_status_changed", seen.append)
    router.on_order("1", seen.append)
    router.publish(make_event(order_id="1"))
    assert len(seen) == 1


def test_failing_callback_does_not_block_others(router):
    seen = []

    def boom(event):
        raise RuntimeError("listener bug")

    router.on("order_created", boom)
    router.on("order_created", seen.append)
    assert router.publish(make_event("order_created")) == 2
    assert len(seen) == 1


def test_off_removes_callback(router):
    seen = []
    router.on("order_created", seen.append)
    assert router.off("order_created", seen.append)
    assert not router.off("order_created", seen.append)
    router.publish(make_event("order_created"))
    assert seen == []


def test_scope_releases_everything(router):
    with SubscriptionScope() as scope:
        scope.add(router.on("order_created", print))
        scope.add(router.on_order("3", print))
        assert router.listener_count() == 2
    assert router.listener_count() == 0
    assert router.watched_orders() == set()


def test_closed_scope_releases_late_additions(router):
    scope = SubscriptionScope()
    scope.close()
    scope.add(router.on("order_created", print))
    assert router.listener_count() == 0
