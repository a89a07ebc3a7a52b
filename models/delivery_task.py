from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.order import Order, OrderStatus

# Statuses in which an order is visible to a delivery partner
TASK_STATUSES = {OrderStatus.READY, OrderStatus.PICKED_UP}


@dataclass
class DeliveryTask:
    id: str
    order_id: str
    restaurant_name: str
    customer_name: str
    pickup_address: str
    delivery_address: str
    status: OrderStatus
    items: list = field(default_factory=list)
    total: float = 0.0
    created_at: Optional[datetime] = None


def task_from_order(order: Order) -> DeliveryTask:
    """Delivery partner's view of an order; the task id is the order id."""
    return DeliveryTask(
        id=order.id,
        order_id=order.id,
        restaurant_name=order.restaurant_name or "Restaurant",
        customer_name=order.customer_name or "Customer",
        pickup_address=order.pickup_address or order.restaurant_name,
        delivery_address=order.delivery_address,
        status=order.status,
        items=[item.to_dict() for item in order.items],
        total=order.total,
        created_at=order.created_at,
    )
