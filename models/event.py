"""Realtime order events after normalization at the transport boundary."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.order import normalize_order_id

ORDER_CREATED = "order_created"
ORDER_STATUS_CHANGED = "order_status_changed"
DELIVERY_ASSIGNED = "delivery_assigned"
DELIVERY_PICKED_UP = "delivery_picked_up"
ORDER_DELIVERED = "order_delivered"
ORDER_CANCELLED = "order_cancelled"

EVENT_TYPES = (
    ORDER_CREATED,
    ORDER_STATUS_CHANGED,
    DELIVERY_ASSIGNED,
    DELIVERY_PICKED_UP,
    ORDER_DELIVERED,
    ORDER_CANCELLED,
)

# Server-side names that carry the same meaning as a canonical type
EVENT_ALIASES = {
    "newOrder": ORDER_CREATED,
    "order_update": ORDER_STATUS_CHANGED,
    "delivery_delivered": ORDER_DELIVERED,
}


def canonical_event_type(name: str) -> str:
    name = EVENT_ALIASES.get(name, name)
    if name not in EVENT_TYPES:
        raise ValueError(f"Unknown order event type: {name!r}")
    return name


@dataclass
class OrderEvent:
    type: str
    order_id: str
    order: Optional[dict] = None
    status: Optional[str] = None
    delivery_partner_id: Optional[str] = None
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        self.type = canonical_event_type(self.type)
        self.order_id = normalize_order_id(self.order_id)
        if self.delivery_partner_id is not None:
            self.delivery_partner_id = str(self.delivery_partner_id)

    @classmethod
    def from_payload(cls, event_name: str, data) -> "OrderEvent":
        """
        Normalize a raw socket payload.

        order_created sends the order itself; every other event sends
        {orderId, ...} with the order nested under "order" when present.
        Raises ValueError when no order id can be resolved.
        """
        event_type = canonical_event_type(event_name)
        data = data if isinstance(data, dict) else {}
        if event_type == ORDER_CREATED:
            order = data.get("order") if isinstance(data.get("order"), dict) else data
            order_id = order.get("id", data.get("orderId"))
        else:
            order = data.get("order") if isinstance(data.get("order"), dict) else None
            order_id = data.get("orderId", data.get("id"))
            if order_id is None and order is not None:
                order_id = order.get("id")
        status = data.get("status")
        if status is None and order is not None:
            status = order.get("status")
        return cls(
            type=event_type,
            order_id=order_id,
            order=order,
            status=status,
            delivery_partner_id=data.get("deliveryPartnerId"),
            reason=data.get("reason"),
        )
