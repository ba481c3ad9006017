"""
Kitchen queue depth, load and wait-time estimates derived from the live orders.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from orderline.constants import (
    DEFAULT_KITCHEN_CAPACITY,
    DEFAULT_PER_ORDER_MINUTES,
    KITCHEN_HIGH_LOAD_PERCENT,
    KITCHEN_MEDIUM_LOAD_PERCENT,
    ItemStatus,
    KitchenSeverity,
)
from orderline.schemas import Order
from orderline.services.online_order_service import is_awaiting_online_payment
from orderline.services.order_service import all_items


@dataclass(frozen=True)
class QueueStats:
    orders_in_queue: int
    estimated_wait_minutes: int

    def to_dict(self) -> dict:
        return {
            "ordersInQueue": self.orders_in_queue,
            "estimatedWaitMinutes": self.estimated_wait_minutes,
        }


@dataclass(frozen=True)
class KitchenStatus:
    pending_items_count: int
    preparing_items_count: int
    average_prep_time_minutes: int
    estimated_wait_minutes: int
    kitchen_load_percent: int
    severity: KitchenSeverity

    def to_dict(self) -> dict:
        return {
            "pendingItemsCount": self.pending_items_count,
            "preparingItemsCount": self.preparing_items_count,
            "averagePrepTimeMinutes": self.average_prep_time_minutes,
            "estimatedWaitMinutes": self.estimated_wait_minutes,
            "kitchenLoadPercent": self.kitchen_load_percent,
            "severity": self.severity.value,
        }


def severity_for(load_percent: int) -> KitchenSeverity:
    if load_percent >= KITCHEN_HIGH_LOAD_PERCENT:
        return KitchenSeverity.HIGH
    if load_percent >= KITCHEN_MEDIUM_LOAD_PERCENT:
        return KitchenSeverity.MEDIUM
    return KitchenSeverity.LOW


class KitchenQueueEstimator:
    """
    Load is the number of queued orders relative to `capacity`, capped at 100;
    each queued order adds `per_order_minutes` to the wait estimate.
    """

    def __init__(
        self,
        per_order_minutes: int = DEFAULT_PER_ORDER_MINUTES,
        capacity: int = DEFAULT_KITCHEN_CAPACITY,
    ):
        if per_order_minutes < 0:
            raise ValueError("per_order_minutes cannot be negative")
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.per_order_minutes = per_order_minutes
        self.capacity = capacity

    @staticmethod
    def kitchen_orders(orders: Iterable[Order]) -> list[Order]:
        """Orders the kitchen can see: unconfirmed online orders are hidden."""
        return [order for order in orders if not is_awaiting_online_payment(order)]

    def queued_orders(self, orders: Iterable[Order]) -> list[Order]:
        return [
            order
            for order in self.kitchen_orders(orders)
            if any(item.status != ItemStatus.SERVED for item in all_items(order))
        ]

    def queue_stats(self, orders: Iterable[Order]) -> QueueStats:
        queued = len(self.queued_orders(orders))
        return QueueStats(
            orders_in_queue=queued,
            estimated_wait_minutes=queued * self.per_order_minutes,
        )

    def load_percent(self, orders_in_queue: int) -> int:
        return min(100, round(orders_in_queue / self.capacity * 100))

    def status(self, orders: Iterable[Order]) -> KitchenStatus:
        visible = self.kitchen_orders(orders)
        items = [item for order in visible for item in all_items(order)]

        prep_times = [
            item.served_at - item.preparing_at
            for item in items
            if item.preparing_at is not None and item.served_at is not None
        ]
        average_ms = sum(prep_times) / len(prep_times) if prep_times else 0

        stats = self.queue_stats(visible)
        load = self.load_percent(stats.orders_in_queue)
        return KitchenStatus(
            pending_items_count=sum(1 for i in items if i.status == ItemStatus.PENDING),
            preparing_items_count=sum(1 for i in items if i.status == ItemStatus.PREPARING),
            average_prep_time_minutes=round(average_ms / 60000),
            estimated_wait_minutes=stats.estimated_wait_minutes,
            kitchen_load_percent=load,
            severity=severity_for(load),
        )
