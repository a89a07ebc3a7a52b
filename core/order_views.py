# core/order_views.py
"""Pure, snapshot-based views over a list of orders. Recomputed on every query."""
from datetime import datetime

from models.order import OrderStatus

ACTIVE_EXCLUDED = {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.DELIVERED}
COMPLETED_STATUSES = {OrderStatus.COMPLETED, OrderStatus.DELIVERED}

BUCKETS = ("all", "active", "completed", "cancelled")
SORT_ORDERS = ("recent", "oldest", "amount")

# Restaurant board columns
KANBAN_COLUMNS = {
    "new": {OrderStatus.PENDING, OrderStatus.CONFIRMED},
    "preparing": {OrderStatus.PREPARING},
    "ready": {OrderStatus.READY},
}


def filter_by_bucket(orders, bucket: str = "all"):
    if bucket == "all":
        return list(orders)
    if bucket == "active":
        return [o for o in orders if o.status not in ACTIVE_EXCLUDED]
    if bucket == "completed":
        return [o for o in orders if o.status in COMPLETED_STATUSES]
    if bucket == "cancelled":
        return [o for o in orders if o.status == OrderStatus.CANCELLED]
    raise ValueError(f"Unknown order bucket: {bucket!r}")


def search_orders(orders, query: str):
    """Case-insensitive match on order id, item names and restaurant name."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(orders)
    results = []
    for order in orders:
        haystack = [order.id.lower(), (order.restaurant_name or "").lower()]
        haystack.extend((item.name or "").lower() for item in order.items)
        if any(needle in text for text in haystack):
            results.append(order)
    return results


def sort_orders(orders, sort: str = "recent"):
    if sort == "recent":
        return sorted(orders, key=lambda o: o.created_at or datetime.min, reverse=True)
    if sort == "oldest":
        return sorted(orders, key=lambda o: o.created_at or datetime.min)
    if sort == "amount":
        return sorted(orders, key=lambda o: o.total, reverse=True)
    raise ValueError(f"Unknown sort order: {sort!r}")


def kanban_columns(orders):
    """Group open orders into the restaurant board columns, oldest first."""
    columns = {name: [] for name in KANBAN_COLUMNS}
    for order in sort_orders(orders, "oldest"):
        for name, statuses in KANBAN_COLUMNS.items():
            if order.status in statuses:
                columns[name].append(order)
                break
    return columns


def build_view(orders, bucket: str = "all", query: str = "", sort: str = "recent"):
    return sort_orders(search_orders(filter_by_bucket(orders, bucket), query), sort)
