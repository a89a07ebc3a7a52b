from core.logger import log_action, recent_actions
from models.local_state import LocalState


def test_save_load_and_overwrite(storage):
    assert storage.load("customer-cart") is None
    assert storage.load("customer-cart", default={}) == {}
    storage.save("customer-cart", {"items": [1]})
    storage.save("customer-cart", {"items": [1, 2]})
    assert storage.load("customer-cart") == {"items": [1, 2]}
    assert storage.keys() == ["customer-cart"]


def test_unreadable_blob_falls_back_to_default(storage, session_factory):
    session = session_factory()
    session.add(LocalState(key="customer-behavior", value="{not json"))
    session.commit()
    session.close()
    assert storage.load("customer-behavior", default={"views": []}) == {"views": []}


def test_remove_and_prefix_keys(storage):
    storage.save("cache:a", 1)
    storage.save("cache:b", 2)
    storage.save("customer-auth", {})
    assert storage.keys("cache:") == ["cache:a", "cache:b"]
    assert storage.remove("cache:a")
    assert not storage.remove("cache:a")
    assert storage.keys("cache:") == ["cache:b"]


def test_audit_log_records_actions(session_factory):
    log_action("staff@r1", "Updated order 42 to ready", 42, session_factory=session_factory)
    log_action("", "Placed order 43", "43", session_factory=session_factory)
    rows = recent_actions(session_factory=session_factory)
    assert [r.action for r in rows] == ["Placed order 43", "Updated order 42 to ready"]
    assert rows[0].actor == "anonymous"
    assert [r.order_id for r in recent_actions(order_id=42, session_factory=session_factory)] == ["42"]
