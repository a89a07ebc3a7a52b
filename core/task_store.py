# core/task_store.py
"""Delivery partner's task list, kept in step with order events."""
import threading

from core.subscription_router import SubscriptionScope
from models.delivery_task import TASK_STATUSES, DeliveryTask, task_from_order
from models.event import (
    DELIVERY_ASSIGNED, DELIVERY_PICKED_UP, ORDER_CANCELLED,
    ORDER_DELIVERED, ORDER_STATUS_CHANGED,
)
from models.order import Order, OrderStatus, is_forward_move, normalize_order_id, parse_status


class DeliveryTaskStore:
    def __init__(self, partner_id=None):
        self.partner_id = str(partner_id) if partner_id is not None else None
        self.current_task = None
        self._tasks = []
        self._lock = threading.Lock()

    def available_tasks(self):
        with self._lock:
            return list(self._tasks)

    def get(self, task_id):
        key = normalize_order_id(task_id)
        with self._lock:
            return next((t for t in self._tasks if t.id == key), None)

    def set_available_tasks(self, orders):
        """Replace the list from a refetch; only ready / picked-up orders become tasks."""
        tasks = [task_from_order(o) for o in orders if o.status in TASK_STATUSES]
        with self._lock:
            self._tasks = tasks
        return tasks

    def add_available_task(self, task: DeliveryTask) -> bool:
        with self._lock:
            if any(t.id == task.id for t in self._tasks):
                return False
            self._tasks.insert(0, task)
        return True

    def remove_available_task(self, task_id) -> bool:
        key = normalize_order_id(task_id)
        with self._lock:
            before = len(self._tasks)
            self._tasks = [t for t in self._tasks if t.id != key]
            removed = len(self._tasks) != before
            if self.current_task is not None and self.current_task.id == key:
                self.current_task = None
                removed = True
        return removed

    def set_current_task(self, task):
        with self._lock:
            self.current_task = task

    def _set_status(self, key, status) -> bool:
        """Advance a task's status; stale (backward) updates are ignored."""
        changed = False
        with self._lock:
            targets = [t for t in self._tasks if t.id == key]
            if self.current_task is not None and self.current_task.id == key:
                targets.append(self.current_task)
            for task in targets:
                if task.status != status and is_forward_move(task.status, status):
                    task.status = status
                    changed = True
        return changed

    def apply_event(self, event) -> bool:
        key = event.order_id
        if event.type == DELIVERY_ASSIGNED:
            if self.partner_id is not None and event.delivery_partner_id != self.partner_id:
                return False
            if not event.order:
                return False
            try:
                order = Order.from_payload(event.order)
            except (ValueError, TypeError) as e:
                print(f"⚠️ Dropped malformed assignment for order {key}: {e}")
                return False
            if order.status not in TASK_STATUSES:
                order.status = OrderStatus.READY
            return self.add_available_task(task_from_order(order))
        if event.type == DELIVERY_PICKED_UP:
            return self._set_status(key, OrderStatus.PICKED_UP)
        if event.type == ORDER_STATUS_CHANGED and event.status is not None:
            try:
                status = parse_status(event.status)
            except ValueError:
                return False
            if status in TASK_STATUSES:
                return self._set_status(key, status)
            if status in (OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderStatus.CANCELLED):
                return self.remove_available_task(key)
            return False
        if event.type in (ORDER_DELIVERED, ORDER_CANCELLED):
            return self.remove_available_task(key)
        return False

    def bind(self, source) -> SubscriptionScope:
        scope = SubscriptionScope()
        for event_type in (DELIVERY_ASSIGNED, DELIVERY_PICKED_UP, ORDER_STATUS_CHANGED,
                           ORDER_DELIVERED, ORDER_CANCELLED):
            scope.add(source.on(event_type, self.apply_event))
        return scope
