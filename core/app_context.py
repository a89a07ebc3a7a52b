# core/app_context.py
"""Builds every store and service for one session and hands them out explicitly."""
from dataclasses import dataclass
from typing import Optional

from core.behavior_tracker import BehaviorTracker
from core.cache import CacheManager
from core.cart_service import CartStore
from core.config import ORDER_SERVICE_URL
from core.local_storage import LocalStorage
from core.notifications import NotificationCenter
from core.order_api import OrderApiClient
from core.order_store import OrderStore
from core.recommendation_cache import RecommendationCache
from core.session_store import AuthStore, FavoritesStore
from core.subscription_router import SubscriptionRouter
from core.sync_service import OrderSyncService
from core.task_store import DeliveryTaskStore
from core.transport import OrderEventClient


@dataclass
class AppContext:
    storage: LocalStorage
    auth: AuthStore
    cart: CartStore
    favorites: FavoritesStore
    tracker: BehaviorTracker
    recommendations: RecommendationCache
    cache: CacheManager
    orders: OrderStore
    router: SubscriptionRouter
    transport: OrderEventClient
    api: OrderApiClient
    notifications: NotificationCenter
    sync: OrderSyncService
    tasks: Optional[DeliveryTaskStore] = None


def build_context(session_factory=None, socket_factory=None, http_session=None,
                  base_url=ORDER_SERVICE_URL, principal_type="customer", principal_id=None):
    storage = LocalStorage(session_factory)
    auth = AuthStore(storage)
    router = SubscriptionRouter()
    transport = OrderEventClient(router=router, socket_factory=socket_factory)
    api = OrderApiClient(base_url, token=auth.token, session=http_session)
    orders = OrderStore()
    notifications = NotificationCenter()
    tracker = BehaviorTracker(storage)
    tasks = DeliveryTaskStore(principal_id or auth.principal_id) if principal_type == "delivery" else None
    sync = OrderSyncService(api, orders, transport, notifications, task_store=tasks,
                            tracker=tracker, audit_session_factory=session_factory)
    return AppContext(
        storage=storage,
        auth=auth,
        cart=CartStore(storage),
        favorites=FavoritesStore(storage),
        tracker=tracker,
        recommendations=RecommendationCache(storage),
        cache=CacheManager(storage),
        orders=orders,
        router=router,
        transport=transport,
        api=api,
        notifications=notifications,
        sync=sync,
        tasks=tasks,
    )
