"""
Order aggregate helpers: lookup, creation, notes, derived flags and the
dashboard sections built from them.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from orderline.constants import ItemStatus, OrderProgress, OrderType
from orderline.datetime_utils import now_ms
from orderline.permissions import Actor
from orderline.schemas import AppendedOrder, Order, OrderItem, OrderNote
from orderline.services.payment_service import PaymentReconciler, PaymentTotals, order_total
from orderline.store import OrderNotFoundError
from orderline.validation import ValidationError, validate_customer_name, validate_note

logger = logging.getLogger(__name__)


def find_appended(order: Order, appended_id: str) -> AppendedOrder:
    for appended in order.appended_orders:
        if appended.id == appended_id:
            return appended
    raise OrderNotFoundError(f"Appended order {appended_id} not found in order {order.id}")


def find_item(order: Order, item_id: str, appended_id: str | None = None) -> OrderItem:
    items = find_appended(order, appended_id).items if appended_id else order.items
    for item in items:
        if item.id == item_id:
            return item
    raise OrderNotFoundError(f"Item {item_id} not found in order {order.id}")


def all_items(order: Order) -> list[OrderItem]:
    return [*order.items, *(item for a in order.appended_orders for item in a.items)]


def all_served(items: Iterable[OrderItem]) -> bool:
    items = list(items)
    return bool(items) and all(item.status == ItemStatus.SERVED for item in items)


def stamp_all_items_served(order: Order, when: int) -> bool:
    """Set `all_items_served_at` the first time every item is served. Never cleared."""
    if order.all_items_served_at is None and all_served(all_items(order)):
        order.all_items_served_at = when
        return True
    return False


def new_order(
    customer_name: str,
    items: list[OrderItem | dict[str, Any]],
    order_taker: Actor | None = None,
    order_type: OrderType | str = OrderType.DINE_IN,
    order_id: str | None = None,
    created_at: int | None = None,
    **extra: Any,
) -> Order:
    """Build a new order: every item pending, nothing paid."""
    name = validate_customer_name(customer_name)
    if not items:
        raise ValidationError("Order must have at least one item", code="VAL_004")

    parsed = [OrderItem.model_validate(i) if isinstance(i, dict) else i.model_copy() for i in items]
    for item in parsed:
        reset_item_progress(item)

    return Order(
        id=order_id or str(uuid.uuid4()),
        customer_name=name,
        items=parsed,
        created_at=created_at or now_ms(),
        order_type=OrderType(order_type),
        order_taker_name=order_taker.name if order_taker else None,
        order_taker_email=order_taker.email if order_taker else None,
        **extra,
    )


def reset_item_progress(item: OrderItem) -> None:
    item.status = ItemStatus.PENDING
    item.preparing_at = item.ready_at = item.served_at = None
    item.prepared_by = item.prepared_by_email = None
    item.served_by = item.served_by_email = None


def add_note(order: Order, content: str, author: Actor | None = None, when: int | None = None) -> OrderNote:
    note = OrderNote(
        id=str(uuid.uuid4()),
        content=validate_note(content),
        created_at=when or now_ms(),
        created_by=author.name if author else None,
        created_by_email=author.email if author else None,
    )
    order.notes.append(note)
    return note


class OrderAggregate:
    """Read-only view of one order exposing its derived state."""

    def __init__(self, order: Order):
        self.order = order

    @property
    def total(self) -> Decimal:
        return order_total(self.order)

    @property
    def payment(self) -> PaymentTotals:
        return PaymentReconciler.compute_totals(self.order)

    @property
    def is_fully_served(self) -> bool:
        return all_served(self.order.items) and all(
            all_served(a.items) for a in self.order.appended_orders
        )

    @property
    def is_fully_paid(self) -> bool:
        return PaymentReconciler.is_fully_paid(self.order)

    @property
    def is_fully_complete(self) -> bool:
        return self.is_fully_served and self.is_fully_paid

    @property
    def is_served_not_paid(self) -> bool:
        return self.is_fully_served and not self.is_fully_paid

    @property
    def progress(self) -> OrderProgress:
        items = all_items(self.order)
        if all_served(items):
            return OrderProgress.COMPLETED
        if any(i.status in (ItemStatus.PREPARING, ItemStatus.READY) for i in items):
            return OrderProgress.IN_PROGRESS
        return OrderProgress.PENDING

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in all_items(self.order))

    @property
    def latest_activity(self) -> int:
        """Creation time of the newest batch (the order itself or its last append)."""
        return max([self.order.created_at, *(a.created_at for a in self.order.appended_orders)])

    def duration_ms(self) -> int | None:
        """
        Time from creation until everything was served, plus the preparation
        time of each appended item.
        """
        if not self.order.all_items_served_at or not self.order.created_at:
            return None
        base = self.order.all_items_served_at - self.order.created_at
        appended_prep = sum(
            item.served_at - item.preparing_at
            for appended in self.order.appended_orders
            for item in appended.items
            if item.preparing_at and item.served_at
        )
        return base + appended_prep


def format_duration(milliseconds: int | None) -> str:
    if not milliseconds or milliseconds <= 0:
        return ""
    seconds = milliseconds // 1000
    minutes = seconds // 60
    hours = minutes // 60
    if hours > 0:
        remaining = minutes % 60
        return f"{hours}h {remaining}m" if remaining else f"{hours}h"
    if minutes > 0:
        return f"{minutes} min"
    return f"{seconds} sec"


def crew_display(name: str | None, email: str | None) -> str | None:
    if name:
        return name
    if email:
        return email.split("@")[0]
    return None


@dataclass
class DashboardSections:
    active: list[Order] = field(default_factory=list)
    served_not_paid: list[Order] = field(default_factory=list)
    completed: list[Order] = field(default_factory=list)


def dashboard_sections(orders: Iterable[Order], in_business_day) -> DashboardSections:
    """
    Split orders into the crew dashboard sections.

    `in_business_day` is a predicate on an order's `created_at`; fully complete
    orders outside the current business day are hidden.
    """
    sections = DashboardSections()
    for order in orders:
        aggregate = OrderAggregate(order)
        if aggregate.is_fully_complete:
            if in_business_day(order.created_at):
                sections.completed.append(order)
        elif aggregate.is_served_not_paid:
            sections.served_not_paid.append(order)
        else:
            sections.active.append(order)

    sections.active.sort(key=lambda o: o.created_at)
    sections.served_not_paid.sort(key=lambda o: OrderAggregate(o).latest_activity)
    sections.completed.sort(key=lambda o: o.created_at)
    return sections
