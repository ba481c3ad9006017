"""
HTTP client for the remote order store.

Every endpoint answers with a `{"success", "data", "error"}` envelope. Network
failures, 5xx answers and bodies that do not hold a valid order raise
`RemoteUnavailableError`; 4xx answers raise
`RemoteRequestError` with the HTTP status.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import requests
from pydantic import ValidationError as SchemaValidationError

from orderline.constants import ItemStatus
from orderline.schemas import Order, OrderItem, dump_order, parse_order

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    code = "SYNC_001"


class RemoteUnavailableError(RemoteError):
    """The remote store could not be reached or failed on its side."""


class RemoteRequestError(RemoteError):
    """The remote store rejected the request."""

    code = "SYNC_002"

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status


class OrdersApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})

    def close(self) -> None:
        self.session.close()

    def _request(
        self,
        method: str,
        endpoint: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self.session.request(
                method, url, json=payload, params=params, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise RemoteUnavailableError(f"Error communicating with {url}: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.status_code >= 500:
            raise RemoteUnavailableError(f"{method} {endpoint} failed with {resp.status_code}")
        if resp.status_code >= 400:
            message = body.get("error") if isinstance(body, dict) else resp.text[:200]
            raise RemoteRequestError(
                message or f"HTTP error! status: {resp.status_code}", resp.status_code
            )
        if not isinstance(body, dict):
            raise RemoteUnavailableError(f"Invalid JSON response from {endpoint}")
        return body.get("data")

    def _order(self, data: Any, action: str) -> Order:
        if not isinstance(data, dict) or not data:
            raise RemoteUnavailableError(f"Failed to {action}: empty response")
        try:
            return parse_order(data)
        except SchemaValidationError as exc:
            raise RemoteUnavailableError(
                f"Failed to {action}: malformed order in response ({exc.error_count()} errors)"
            ) from exc

    # -- orders --------------------------------------------------------------

    def list_orders(
        self,
        branch: str | None = None,
        sort_by: str | None = "createdAt",
        sort_order: str | None = "asc",
        online_only: bool = False,
        preparing_only: bool = False,
    ) -> list[Order]:
        params: dict[str, Any] = {}
        if branch:
            params["branch"] = branch
        if sort_by:
            params["sortBy"] = sort_by
        if sort_order:
            params["sortOrder"] = sort_order
        if online_only:
            params["onlineOnly"] = "true"
        if preparing_only:
            params["preparingOnly"] = "true"

        orders = []
        data = self._request("GET", "/orders", params=params) or []
        if not isinstance(data, list):
            raise RemoteUnavailableError("Invalid order list in response")
        for payload in data:
            try:
                orders.append(parse_order(payload))
            except SchemaValidationError as exc:
                logger.warning(f"Skipping malformed order in list response: {exc}")
        return orders

    def create_order(self, order: Order) -> Order:
        return self._order(self._request("POST", "/orders", dump_order(order)), "create order")

    def update_order(self, order_id: str, fields: dict[str, Any]) -> Order:
        return self._order(self._request("PUT", f"/orders/{order_id}", fields), "update order")

    def delete_order(self, order_id: str) -> None:
        self._request("DELETE", f"/orders/{order_id}")

    def append_items(
        self,
        order_id: str,
        items: Iterable[OrderItem],
        created_at: int,
        appended_id: str | None = None,
    ) -> Order:
        payload = {
            "id": appended_id,
            "items": [i.model_dump(mode="json", by_alias=True, exclude_none=True) for i in items],
            "createdAt": created_at,
        }
        return self._order(
            self._request("POST", f"/orders/{order_id}/append", payload), "append items"
        )

    def delete_appended_order(self, order_id: str, appended_id: str) -> Order:
        return self._order(
            self._request("DELETE", f"/orders/{order_id}/appended/{appended_id}"),
            "delete appended order",
        )

    def update_item_status(
        self,
        order_id: str,
        item_id: str,
        status: ItemStatus,
        attribution: dict[str, Any] | None = None,
        appended_id: str | None = None,
    ) -> Order:
        base = f"/orders/{order_id}"
        if appended_id:
            base = f"{base}/appended/{appended_id}"
        payload = {"status": ItemStatus(status).value, **(attribution or {})}
        return self._order(
            self._request("PUT", f"{base}/items/{item_id}/status", payload),
            "update item status",
        )

    def toggle_payment(
        self,
        order_id: str,
        is_paid: bool,
        payment_method: str | None = None,
        cash_amount: float | None = None,
        gcash_amount: float | None = None,
        paid_amount: float | None = None,
        amount_received: float | None = None,
        appended_id: str | None = None,
    ) -> Order:
        """Payment of the main order, or of one appended order when `appended_id` is given."""
        endpoint = f"/orders/{order_id}/payment"
        if appended_id:
            endpoint = f"/orders/{order_id}/appended/{appended_id}/payment"
        payload: dict[str, Any] = {"isPaid": is_paid}
        if payment_method:
            payload["paymentMethod"] = payment_method
        if cash_amount is not None:
            payload["cashAmount"] = cash_amount
        if gcash_amount is not None:
            payload["gcashAmount"] = gcash_amount
        if paid_amount is not None:
            payload["paidAmount"] = paid_amount
        if amount_received is not None:
            payload["amountReceived"] = amount_received
        return self._order(self._request("PUT", endpoint, payload), "update payment status")

    # -- online orders -------------------------------------------------------

    def confirm_online_payment(self, order_id: str) -> Order:
        return self._order(
            self._request("PUT", f"/orders/{order_id}/online-payment/confirm"),
            "confirm online payment",
        )

    def get_pending_online_order_codes(self) -> list[str]:
        return list(self._request("GET", "/orders/online/pending-codes") or [])

    def get_online_orders_count(self) -> int:
        data = self._request("GET", "/orders/online/count")
        if isinstance(data, dict):
            data = data.get("count")
        return int(data or 0)
