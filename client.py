"""
Small requests-based client for the UniLunch API.

Used by scripts and by the integration tests; it does what the browser
frontend does, including submitting the cart and clearing it afterwards.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from cart import Cart

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class ApiClientError(Exception):
    def __init__(self, status_code: int, message: str, errors: Optional[Dict] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.errors = errors


class UniLunchClient:
    def __init__(self, base_url: str, session: Optional[requests.Session] = None, token: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.token = token

    def _request(self, method: str, path: str, json: Any = None) -> Dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        resp = self.session.request(
            method, f"{self.base_url}{path}", json=json, headers=headers, timeout=DEFAULT_TIMEOUT,
        )

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if not 200 <= resp.status_code < 300:
            raise ApiClientError(
                resp.status_code,
                data.get("message") or f"HTTP error! status: {resp.status_code}",
                data.get("errors"),
            )
        return data

    # ---------- auth ----------
    def login(self, email: str, password: str) -> Dict:
        data = self._request("POST", "/login", {"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    def register(self, name: str, email: str, password: str, password_confirmation: str) -> Dict:
        data = self._request("POST", "/register", {
            "name": name,
            "email": email,
            "password": password,
            "password_confirmation": password_confirmation,
        })
        self.token = data["token"]
        return data["user"]

    def logout(self) -> None:
        self._request("POST", "/logout")
        self.token = None

    # ---------- meals ----------
    def list_meals(self) -> List[Dict]:
        return self._request("GET", "/meals")["meals"]

    # ---------- orders ----------
    def confirm_order(self, cart: Cart, pickup_time: str, payment_method: str) -> Dict:
        """
        Submits the whole cart as one order. The cart is cleared only when the
        server accepted it, so a failed submission can simply be retried.
        """
        if cart.is_empty:
            raise ValueError("Cart is empty")

        data = self._request("POST", "/orders", {
            "items": cart.to_order_items(),
            "pickupTime": pickup_time,
            "paymentMethod": payment_method,
        })
        cart.clear()
        logger.info("order %s confirmed", data["order"]["id"])
        return data["order"]

    def list_orders(self) -> List[Dict]:
        return self._request("GET", "/orders")["orders"]

    def cancel_order(self, order_id: int) -> Dict:
        return self._request("PUT", f"/orders/{order_id}/cancel")["order"]

    def delete_order(self, order_id: int) -> None:
        self._request("DELETE", f"/orders/{order_id}")

    # ---------- admin ----------
    def admin_orders(self) -> Dict:
        data = self._request("GET", "/admin/orders")
        return {"orders": data["orders"], "pendingCount": data["pendingCount"]}

    def update_order_status(self, order_id: int, status: str) -> Dict:
        return self._request("PUT", f"/admin/orders/{order_id}/status", {"status": status})["order"]
