"""Order domain types shared by every consuming application."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked_up"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Forward order of the lifecycle; delivered and completed share the last slot
STATUS_RANK = {
    OrderStatus.PENDING: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PREPARING: 2,
    OrderStatus.READY: 3,
    OrderStatus.PICKED_UP: 4,
    OrderStatus.OUT_FOR_DELIVERY: 5,
    OrderStatus.DELIVERED: 6,
    OrderStatus.COMPLETED: 6,
}

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderStatus.CANCELLED}

# Spellings used by the restaurant board and older services
STATUS_ALIASES = {
    "new": OrderStatus.PENDING,
    "placed": OrderStatus.PENDING,
    "accepted": OrderStatus.CONFIRMED,
    "ready_for_pickup": OrderStatus.READY,
    "pickedup": OrderStatus.PICKED_UP,
    "in_transit": OrderStatus.OUT_FOR_DELIVERY,
    "canceled": OrderStatus.CANCELLED,
}


def parse_status(value) -> OrderStatus:
    """Normalize a status string from any source; raises ValueError if unknown."""
    if isinstance(value, OrderStatus):
        return value
    if value is None:
        raise ValueError("Order status is missing")
    key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    if key in STATUS_ALIASES:
        return STATUS_ALIASES[key]
    try:
        return OrderStatus(key)
    except ValueError:
        raise ValueError(f"Unknown order status: {value!r}") from None


def is_forward_move(current: OrderStatus, new: OrderStatus) -> bool:
    """True if moving current -> new never goes backward and never leaves a terminal state."""
    if current in TERMINAL_STATUSES:
        return False
    if new == OrderStatus.CANCELLED:
        return True
    return STATUS_RANK[new] >= STATUS_RANK[current]


def normalize_order_id(value) -> str:
    """Canonical string id: 42, 42.0 and "42" all become "42"."""
    if value is None or isinstance(value, bool):
        raise ValueError(f"Invalid order id: {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Invalid order id: {value!r}")
        value = int(value)
    text = str(value).strip()
    if not text:
        raise ValueError("Order id is empty")
    return text


def compute_total(subtotal: float, discount: float = 0.0, delivery_fee: float = 0.0, tax: float = 0.0) -> float:
    """subtotal - discount + delivery fee + tax, never below zero."""
    return round(max(0.0, subtotal - discount + delivery_fee + tax), 2)


def parse_timestamp(value) -> Optional[datetime]:
    """ISO string / epoch seconds / datetime -> naive UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        # millisecond epochs come from the browser apps
        seconds = value / 1000 if value > 1e11 else value
        parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _pick(payload: dict, *names, default=None):
    for name in names:
        if name in payload and payload[name] is not None:
            return payload[name]
    return default


@dataclass
class OrderItem:
    id: str
    name: str
    price: float
    quantity: int = 1

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)

    @classmethod
    def from_payload(cls, payload: dict) -> "OrderItem":
        return cls(
            id=str(_pick(payload, "id", "itemId", "item_id", "menuItemId", default="")),
            name=str(_pick(payload, "name", "itemName", default="")),
            price=float(_pick(payload, "price", "unitPrice", "unit_price", default=0)),
            quantity=int(_pick(payload, "quantity", "qty", default=1)),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "price": self.price, "quantity": self.quantity}


@dataclass
class Order:
    id: str
    status: OrderStatus = OrderStatus.PENDING
    items: list = field(default_factory=list)
    subtotal: Optional[float] = None
    discount: float = 0.0
    delivery_fee: float = 0.0
    tax: float = 0.0
    restaurant_id: Optional[str] = None
    restaurant_name: str = ""
    customer_id: Optional[str] = None
    customer_name: str = ""
    delivery_address: str = ""
    pickup_address: str = ""
    delivery_partner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.id = normalize_order_id(self.id)
        self.status = parse_status(self.status)
        if self.subtotal is None:
            self.subtotal = round(sum(item.line_total for item in self.items), 2)
        if self.created_at is None:
            self.created_at = datetime.utcnow()
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def total(self) -> float:
        return compute_total(self.subtotal, self.discount, self.delivery_fee, self.tax)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_payload(cls, payload: dict) -> "Order":
        """Build an Order from a REST or realtime payload (camelCase or snake_case)."""
        items = [OrderItem.from_payload(i) for i in _pick(payload, "items", default=[]) if isinstance(i, dict)]
        subtotal = _pick(payload, "subtotal")
        if subtotal is None and not items:
            # restaurant payloads only carry totalPrice
            subtotal = _pick(payload, "total", "totalPrice", "total_price")
        restaurant_id = _pick(payload, "restaurantId", "restaurant_id")
        customer_id = _pick(payload, "customerId", "customer_id")
        partner_id = _pick(payload, "deliveryPartnerId", "delivery_partner_id")
        return cls(
            id=_pick(payload, "id", "orderId", "order_id"),
            status=_pick(payload, "status", default=OrderStatus.PENDING),
            items=items,
            subtotal=float(subtotal) if subtotal is not None else None,
            discount=float(_pick(payload, "discount", default=0)),
            delivery_fee=float(_pick(payload, "deliveryFee", "delivery_fee", default=0)),
            tax=float(_pick(payload, "tax", default=0)),
            restaurant_id=str(restaurant_id) if restaurant_id is not None else None,
            restaurant_name=str(_pick(payload, "restaurantName", "restaurant_name", default="")),
            customer_id=str(customer_id) if customer_id is not None else None,
            customer_name=str(_pick(payload, "customerName", "customer_name", default="")),
            delivery_address=str(_pick(payload, "deliveryAddress", "delivery_address", default="")),
            pickup_address=str(_pick(payload, "pickupAddress", "pickup_address", "restaurantAddress", default="")),
            delivery_partner_id=str(partner_id) if partner_id is not None else None,
            created_at=parse_timestamp(_pick(payload, "createdAt", "created_at")),
            updated_at=parse_timestamp(_pick(payload, "updatedAt", "updated_at")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
            "discount": self.discount,
            "deliveryFee": self.delivery_fee,
            "tax": self.tax,
            "total": self.total,
            "restaurantId": self.restaurant_id,
            "restaurantName": self.restaurant_name,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "deliveryAddress": self.delivery_address,
            "pickupAddress": self.pickup_address,
            "deliveryPartnerId": self.delivery_partner_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
