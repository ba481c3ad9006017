"""
Pydantic schemas for order snapshots and push-channel events.

Every order that enters a terminal (API response, push event, local cache row)
is parsed through these models exactly once, so the defaulting rules below are
the only place missing fields get filled in. Field names are snake_case in
Python and camelCase on the wire.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from orderline.constants import (
    CUSTOMER_NAME_MAX_LENGTH,
    NOTE_MAX_LENGTH,
    SNAPSHOT_EVENTS,
    EventType,
    ItemStatus,
    OnlinePaymentStatus,
    OrderType,
    PaymentMethod,
)


class SnapshotModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class OrderItem(SnapshotModel):
    id: str
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(default=1, ge=1)
    status: ItemStatus = ItemStatus.PENDING
    item_type: OrderType = OrderType.DINE_IN
    note: str | None = Field(None, max_length=NOTE_MAX_LENGTH)
    preparing_at: int | None = None
    ready_at: int | None = None
    served_at: int | None = None
    prepared_by: str | None = None
    prepared_by_email: str | None = None
    served_by: str | None = None
    served_by_email: str | None = None

    @field_validator("price")
    @classmethod
    def round_price(cls, v):
        return round(v, 2)

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v):
        return v or 1

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v):
        return v or ItemStatus.PENDING

    @field_validator("item_type", mode="before")
    @classmethod
    def default_item_type(cls, v):
        return v or OrderType.DINE_IN

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class PayableModel(SnapshotModel):
    """Payment fields shared by an order and each of its appended orders."""

    is_paid: bool = False
    payment_method: PaymentMethod | None = None
    cash_amount: float | None = Field(None, ge=0)
    gcash_amount: float | None = Field(None, ge=0)
    paid_amount: float | None = Field(None, ge=0)
    amount_received: float | None = Field(None, ge=0)

    @field_validator("is_paid", mode="before")
    @classmethod
    def default_is_paid(cls, v):
        return bool(v)

    @field_validator("payment_method", mode="before")
    @classmethod
    def default_payment_method(cls, v):
        return v or None

    def clear_payment(self) -> None:
        self.is_paid = False
        self.payment_method = None
        self.cash_amount = None
        self.gcash_amount = None
        self.paid_amount = None
        self.amount_received = None


class AppendedOrder(PayableModel):
    id: str
    created_at: int
    items: list[OrderItem] = Field(..., min_length=1)


class OrderNote(SnapshotModel):
    id: str
    content: str = Field(..., min_length=1, max_length=NOTE_MAX_LENGTH)
    created_at: int
    created_by: str | None = None
    created_by_email: str | None = None


class Order(PayableModel):
    id: str
    order_number: int | None = None
    customer_name: str = Field(..., min_length=1, max_length=CUSTOMER_NAME_MAX_LENGTH)
    items: list[OrderItem] = Field(..., min_length=1)
    created_at: int
    order_type: OrderType = OrderType.DINE_IN
    appended_orders: list[AppendedOrder] = Field(default_factory=list)
    notes: list[OrderNote] = Field(default_factory=list)
    all_items_served_at: int | None = None
    order_taker_name: str | None = None
    order_taker_email: str | None = None
    branch_id: str | None = None
    order_source: str | None = None
    online_order_code: str | None = None
    online_payment_status: OnlinePaymentStatus | None = None
    selected_payment_method: str | None = None

    @field_validator("customer_name", mode="before")
    @classmethod
    def strip_customer_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("order_type", mode="before")
    @classmethod
    def default_order_type(cls, v):
        return v or OrderType.DINE_IN

    @field_validator("appended_orders", "notes", mode="before")
    @classmethod
    def default_list(cls, v):
        return v or []

    @field_validator("online_payment_status", mode="before")
    @classmethod
    def default_online_payment_status(cls, v):
        return v or None


class PushEvent(BaseModel):
    """A decoded push-channel message: a full snapshot, or an id for deletions."""

    type: EventType
    order: Order | None = None
    order_id: str


def parse_order(payload: dict[str, Any]) -> Order:
    return Order.model_validate(payload)


def dump_order(order: Order) -> dict[str, Any]:
    """Wire form of an order (camelCase keys, enum values, unset optionals dropped)."""
    return order.model_dump(mode="json", by_alias=True, exclude_none=True)


def parse_event(event_type: str, payload: Any) -> PushEvent:
    """
    Normalize a raw push message.

    Snapshot events carry the whole order. `order.deleted` carries either the
    bare id or an object with an `id` (or `orderId`) key. A confirmation that
    only names the order is accepted with `order` left empty.
    """
    kind = EventType(event_type)

    if kind in SNAPSHOT_EVENTS and isinstance(payload, dict) and "items" in payload:
        order = parse_order(payload)
        return PushEvent(type=kind, order=order, order_id=order.id)

    if isinstance(payload, dict):
        order_id = payload.get("id") or payload.get("orderId")
    else:
        order_id = payload

    if not order_id or kind not in (EventType.ORDER_DELETED, EventType.ONLINE_ORDER_CONFIRMED):
        raise ValueError(f"Event '{kind.value}' requires a full order snapshot")

    return PushEvent(type=kind, order_id=str(order_id))
