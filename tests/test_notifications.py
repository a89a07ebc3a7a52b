import pytest

from core.notifications import NotificationCenter


def test_newest_first_and_capped():
    center = NotificationCenter(limit=3)
    for n in range(5):
        center.push("info", f"toast {n}")
    assert [n.message for n in center.items()] == ["toast 4", "toast 3", "toast 2"]


def test_dismiss_and_clear():
    center = NotificationCenter()
    note = center.push("success", "Order placed", order_id=12)
    assert note.order_id == "12"
    assert center.dismiss(note.id)
    assert not center.dismiss(note.id)
    center.push("warning", "Slow connection")
    center.clear()
    assert center.items() == []


def test_unknown_level_rejected():
    with pytest.raises(ValueError):
        NotificationCenter().push("fatal", "nope")
