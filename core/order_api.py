# core/order_api.py
import requests

from core.config import ORDER_SERVICE_URL, REQUEST_TIMEOUT
from models.order import Order, normalize_order_id, parse_status


class OrderApiError(Exception):
    """A request to the order service failed (network error or non-2xx)."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class OrderPayloadError(OrderApiError):
    """The service accepted the request but its response is not a readable order."""


class OrderApiClient:
    def __init__(self, base_url=ORDER_SERVICE_URL, token=None, session=None, timeout=REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self):
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise OrderApiError(f"{method} {path} failed: {e}") from e
        if not response.ok:
            message = response.reason or "request failed"
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("message"):
                    message = body["message"]
            except ValueError:
                pass
            raise OrderApiError(f"{method} {path}: {message}", status_code=response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise OrderPayloadError(f"{method} {path}: invalid JSON response", status_code=response.status_code) from e

    def _orders(self, body):
        if body is None:
            return []
        if isinstance(body, dict):
            body = body.get("orders", body.get("data", []))
        if not isinstance(body, list):
            raise OrderPayloadError(f"Expected a list of orders, got {type(body).__name__}")
        orders = []
        for raw in body:
            try:
                orders.append(Order.from_payload(raw))
            except (ValueError, TypeError, AttributeError) as e:
                print(f"⚠️ Skipping malformed order row: {e}")
        return orders

    def _order(self, body, context):
        try:
            return Order.from_payload(body)
        except (ValueError, TypeError, AttributeError) as e:
            raise OrderPayloadError(f"{context}: unreadable order in response: {e}") from e

    def list_orders(self, params=None):
        return self._orders(self._request("GET", "/orders", params=params or {}))

    def get_active_orders(self):
        return self._orders(self._request("GET", "/orders/active"))

    def get_order(self, order_id):
        body = self._request("GET", f"/orders/{normalize_order_id(order_id)}")
        return self._order(body, "GET /orders") if body else None

    def update_status(self, order_id, status):
        body = self._request(
            "PATCH",
            f"/orders/{normalize_order_id(order_id)}/status",
            json={"status": parse_status(status).value},
        )
        if isinstance(body, dict) and body.get("id") is not None:
            return self._order(body, "PATCH /orders")
        return None

    def place_order(self, payload: dict):
        body = self._request("POST", "/orders", json=payload)
        if not isinstance(body, dict):
            raise OrderPayloadError("POST /orders: no order in response")
        return self._order(body, "POST /orders")
