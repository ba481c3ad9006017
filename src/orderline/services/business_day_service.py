"""
Business day bucketing and the day's sales summary.

A business day opens at `start` local time and closes at `end`, which falls
on the next calendar day whenever `end` is not later than `start` (08:00 to
01:00 by default). Between the close and the next opening, "today" still
means the business day that just finished.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from orderline.constants import (
    DEFAULT_BUSINESS_DAY_END,
    DEFAULT_BUSINESS_DAY_START,
    DEFAULT_TIMEZONE,
    PaymentMethod,
)
from orderline.datetime_utils import from_ms, to_ms, utcnow
from orderline.schemas import Order
from orderline.services.payment_service import (
    ZERO,
    PaymentReconciler,
    items_total,
    recorded_paid,
    to_money,
)
from orderline.validation import validate_clock_time


def _parse_clock(value: str) -> time:
    validate_clock_time(value)
    return datetime.strptime(value, "%H:%M").time()


@dataclass(frozen=True)
class BusinessDay:
    start: datetime
    end: datetime

    @property
    def start_ms(self) -> int:
        return to_ms(self.start)

    @property
    def end_ms(self) -> int:
        return to_ms(self.end)

    def contains(self, timestamp: int) -> bool:
        return self.start_ms <= timestamp < self.end_ms

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


class BusinessDayBucketer:
    def __init__(
        self,
        start: str = DEFAULT_BUSINESS_DAY_START,
        end: str = DEFAULT_BUSINESS_DAY_END,
        timezone: str = DEFAULT_TIMEZONE,
    ):
        self.start = _parse_clock(start)
        self.end = _parse_clock(end)
        self.zone = ZoneInfo(timezone)

    def bucket(self, now: datetime | int | None = None) -> BusinessDay:
        """The business day `now` reports into."""
        if now is None:
            now = utcnow()
        local = from_ms(now, self.zone) if isinstance(now, int) else now.astimezone(self.zone)

        opening_date = local.date()
        if local.time() < self.start:
            opening_date -= timedelta(days=1)
        closing_date = opening_date + timedelta(days=1) if self.end <= self.start else opening_date

        return BusinessDay(
            start=datetime.combine(opening_date, self.start, tzinfo=self.zone),
            end=datetime.combine(closing_date, self.end, tzinfo=self.zone),
        )

    def contains(self, timestamp: int, now: datetime | int | None = None) -> bool:
        return self.bucket(now).contains(timestamp)

    def predicate(self, now: datetime | int | None = None):
        """A `created_at -> bool` filter for the business day of `now`."""
        return self.bucket(now).contains

    def orders_for_day(self, orders: Iterable[Order], now: datetime | int | None = None) -> list[Order]:
        day = self.bucket(now)
        return [order for order in orders if day.contains(order.created_at)]

    def sales_summary(self, orders: Iterable[Order], now: datetime | int | None = None) -> SalesSummary:
        return SalesSummary.from_orders(self.orders_for_day(orders, now))


@dataclass
class SalesSummary:
    total_orders: int = 0
    paid_orders: int = 0
    unpaid_orders: int = 0
    revenue: Decimal = ZERO
    cash: Decimal = ZERO
    gcash: Decimal = ZERO

    @classmethod
    def from_orders(cls, orders: Iterable[Order]) -> SalesSummary:
        """
        Revenue is the reconciled paid amount of each order. The cash/GCash
        breakdown uses each payable's own method; split settlements contribute
        their recorded portions and cover the method-less appended orders
        settled with them.
        """
        summary = cls()
        for order in orders:
            summary.total_orders += 1
            if PaymentReconciler.is_fully_paid(order):
                summary.paid_orders += 1
            else:
                summary.unpaid_orders += 1

            summary.revenue += PaymentReconciler.compute_totals(order).paid_amount
            summary._add_payable(order, items_total(order.items))
            for appended in order.appended_orders:
                summary._add_payable(appended, items_total(appended.items))
        return summary

    def _add_payable(self, payable, total: Decimal) -> None:
        if not payable.is_paid or payable.payment_method is None:
            return
        if payable.payment_method == PaymentMethod.SPLIT:
            self._add(PaymentMethod.CASH, to_money(payable.cash_amount))
            self._add(PaymentMethod.GCASH, to_money(payable.gcash_amount))
        else:
            self._add(payable.payment_method, recorded_paid(payable, total))

    def _add(self, method: PaymentMethod, amount: Decimal) -> None:
        if method == PaymentMethod.CASH:
            self.cash += amount
        elif method == PaymentMethod.GCASH:
            self.gcash += amount

    def to_dict(self) -> dict:
        return {
            "totalOrders": self.total_orders,
            "paidOrders": self.paid_orders,
            "unpaidOrders": self.unpaid_orders,
            "revenue": float(self.revenue),
            "cash": float(self.cash),
            "gcash": float(self.gcash),
        }
