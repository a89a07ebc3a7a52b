from dataclasses import dataclass, asdict
from typing import Optional


@dataclass
class CartItem:
    id: str
    name: str
    price: float
    restaurant_id: str
    restaurant_name: str = ""
    quantity: int = 1
    image: Optional[str] = None

    def __post_init__(self):
        self.id = str(self.id)
        self.restaurant_id = str(self.restaurant_id)
        if self.quantity < 1:
            raise ValueError("Cart item quantity must be at least 1")

    @property
    def key(self):
        return (self.id, self.restaurant_id)

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            price=float(data.get("price", 0)),
            restaurant_id=data.get("restaurant_id", ""),
            restaurant_name=data.get("restaurant_name", ""),
            quantity=int(data.get("quantity", 1)),
            image=data.get("image"),
        )
