from dataclasses import dataclass, field, asdict
from typing import Optional


@dataclass
class UserPreferences:
    """Derived from the behavior log; a cache, never the source of truth."""
    favorite_cuisines: list = field(default_factory=list)
    dietary_restrictions: list = field(default_factory=list)
    price_range: Optional[dict] = None
    preferred_restaurants: list = field(default_factory=list)
    frequently_ordered_items: list = field(default_factory=list)
    average_order_value: float = 0.0
    last_active_time: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)
