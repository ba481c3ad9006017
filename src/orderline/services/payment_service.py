"""
Payment reconciliation for orders and their appended orders.

Amounts are handled as Decimal rounded to centavos. Paid amounts come from the
recorded `paid_amount` fields; a (sub-)order flagged paid without one (legacy
records, and appended orders settled inside a split batch) counts as paid in
full at its item total.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from orderline.constants import PaymentBadge, PaymentMethod
from orderline.schemas import AppendedOrder, Order, OrderItem, PayableModel
from orderline.validation import ValidationError, validate_split_amounts

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def items_total(items: Iterable[OrderItem]) -> Decimal:
    return sum((to_money(item.price) * item.quantity for item in items), ZERO)


def order_total(order: Order) -> Decimal:
    """Main items plus every appended order's items."""
    return items_total(order.items) + sum(
        (items_total(appended.items) for appended in order.appended_orders), ZERO
    )


def recorded_paid(payable: PayableModel, total: Decimal) -> Decimal:
    """Amount a single (sub-)order contributes to the paid sum."""
    if not payable.is_paid:
        return ZERO
    if payable.paid_amount:
        return to_money(payable.paid_amount)
    return total


@dataclass(frozen=True)
class PaymentTotals:
    total: Decimal
    paid_amount: Decimal
    pending_amount: Decimal

    @property
    def is_partially_paid(self) -> bool:
        return self.paid_amount > 0 and self.pending_amount > 0

    @property
    def badge(self) -> PaymentBadge:
        if self.pending_amount == 0:
            return PaymentBadge.PAID
        if self.paid_amount > 0:
            return PaymentBadge.PARTIAL
        return PaymentBadge.UNPAID

    def to_dict(self) -> dict:
        return {
            "total": float(self.total),
            "paidAmount": float(self.paid_amount),
            "pendingAmount": float(self.pending_amount),
            "isPartiallyPaid": self.is_partially_paid,
            "badge": self.badge.value,
        }


def _totals(total: Decimal, paid: Decimal) -> PaymentTotals:
    return PaymentTotals(total=total, paid_amount=paid, pending_amount=max(ZERO, total - paid))


class PaymentReconciler:
    """Computes and records payments on orders and appended orders."""

    @staticmethod
    def compute_totals(order: Order) -> PaymentTotals:
        main_total = items_total(order.items)
        total = main_total
        paid = recorded_paid(order, main_total)
        for appended in order.appended_orders:
            appended_total = items_total(appended.items)
            total += appended_total
            paid += recorded_paid(appended, appended_total)
        return _totals(total, paid)

    @staticmethod
    def compute_appended_totals(appended: AppendedOrder) -> PaymentTotals:
        total = items_total(appended.items)
        return _totals(total, recorded_paid(appended, total))

    @staticmethod
    def is_fully_paid(order: Order) -> bool:
        """Every payable flagged paid and nothing left pending."""
        if not order.is_paid or any(not a.is_paid for a in order.appended_orders):
            return False
        return PaymentReconciler.compute_totals(order).pending_amount == 0

    @staticmethod
    def mark_paid(
        target: PayableModel,
        method: PaymentMethod | str,
        paid_amount=None,
        amount_received=None,
    ) -> None:
        """Flag an order or appended order paid with a single method."""
        method = PaymentMethod(method)
        if method == PaymentMethod.SPLIT:
            raise ValidationError("Split payments are recorded with mark_split_paid", code="VAL_002")
        if paid_amount is not None and to_money(paid_amount) < 0:
            raise ValidationError("Paid amount cannot be negative")

        target.is_paid = True
        target.payment_method = method
        target.cash_amount = None
        target.gcash_amount = None
        if paid_amount is not None:
            target.paid_amount = float(to_money(paid_amount))
        if amount_received is not None:
            target.amount_received = float(to_money(amount_received))

    @staticmethod
    def mark_unpaid(target: PayableModel) -> None:
        target.clear_payment()

    @staticmethod
    def validate_split_payment(
        cash_amount, gcash_amount, amount_to_settle, amount_received=None
    ) -> tuple[Decimal, Decimal, Decimal]:
        """Returns the normalized (cash, gcash, received) amounts or raises ValidationError."""
        cash = to_money(cash_amount)
        gcash = to_money(gcash_amount)
        settle = to_money(amount_to_settle)
        received = to_money(amount_received) if amount_received is not None else settle
        validate_split_amounts(cash, gcash, settle, received)
        return cash, gcash, received

    @staticmethod
    def mark_split_paid(order: Order, cash_amount, gcash_amount, amount_received=None) -> None:
        """Settle the main order alone with a cash/GCash split."""
        main_total = items_total(order.items)
        cash, gcash, received = PaymentReconciler.validate_split_payment(
            cash_amount, gcash_amount, main_total, amount_received
        )
        PaymentReconciler._record_split(order, cash, gcash, received, main_total)

    @staticmethod
    def mark_all_paid(order: Order, method: PaymentMethod | str) -> list[str]:
        """
        Settle the main order and every unpaid appended order with one method.

        Returns the ids of the appended orders that were settled.
        """
        if not order.is_paid:
            PaymentReconciler.mark_paid(order, method)
        settled = []
        for appended in order.appended_orders:
            if not appended.is_paid:
                PaymentReconciler.mark_paid(appended, method)
                settled.append(appended.id)
        return settled

    @staticmethod
    def mark_all_paid_split(
        order: Order, cash_amount, gcash_amount, amount_received=None
    ) -> list[str]:
        """
        Settle everything outstanding with one cash/GCash split.

        The breakdown is stored on the main order only. Appended orders settled
        here are flagged paid without a method or amount, so they reconcile at
        their item total; the main order records the rest of the settlement,
        which includes any shortfall left on appended orders already flagged
        paid with a smaller amount. The main order must still be unpaid, since
        the split record replaces whatever payment it holds.
        """
        if order.is_paid:
            raise ValidationError(
                "Main order is already paid; settle appended orders individually",
                code="VAL_002",
            )
        outstanding = PaymentReconciler.compute_totals(order).pending_amount
        cash, gcash, received = PaymentReconciler.validate_split_payment(
            cash_amount, gcash_amount, outstanding, amount_received
        )

        unpaid = [appended for appended in order.appended_orders if not appended.is_paid]
        main_share = outstanding - sum((items_total(a.items) for a in unpaid), ZERO)
        PaymentReconciler._record_split(order, cash, gcash, received, main_share)
        for appended in unpaid:
            appended.is_paid = True
            appended.payment_method = None
            appended.paid_amount = None
        return [appended.id for appended in unpaid]

    @staticmethod
    def _record_split(
        order: Order, cash: Decimal, gcash: Decimal, received: Decimal, paid: Decimal
    ) -> None:
        order.is_paid = True
        order.payment_method = PaymentMethod.SPLIT
        order.cash_amount = float(cash)
        order.gcash_amount = float(gcash)
        order.amount_received = float(received)
        order.paid_amount = float(paid)
        logger.debug(f"Order {order.id} settled by split: cash={cash} gcash={gcash}")
