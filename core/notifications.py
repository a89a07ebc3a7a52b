# core/notifications.py
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from core.config import NOTIFICATION_LIMIT

LEVELS = ("info", "success", "warning", "error")


@dataclass
class Notification:
    level: str
    message: str
    description: str = ""
    order_id: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.utcnow)


class NotificationCenter:
    """User-facing toasts, newest first, capped at `limit`."""

    def __init__(self, limit: int = NOTIFICATION_LIMIT):
        self.limit = limit
        self._items = []
        self._lock = threading.Lock()

    def push(self, level: str, message: str, description: str = "", order_id=None) -> Notification:
        if level not in LEVELS:
            raise ValueError(f"Unknown notification level: {level!r}")
        note = Notification(level=level, message=message, description=description,
                            order_id=str(order_id) if order_id is not None else None)
        with self._lock:
            self._items.insert(0, note)
            del self._items[self.limit:]
        return note

    def dismiss(self, notification_id: str) -> bool:
        with self._lock:
            before = len(self._items)
            self._items = [n for n in self._items if n.id != notification_id]
            return len(self._items) != before

    def clear(self):
        with self._lock:
            self._items = []

    def items(self):
        with self._lock:
            return list(self._items)
