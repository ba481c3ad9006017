"""Tests for payment reconciliation."""

from decimal import Decimal

import pytest

from orderline.constants import PaymentBadge, PaymentMethod
from orderline.services.payment_service import PaymentReconciler, order_total
from orderline.validation import ValidationError


def _appended(appended_id, price, **payment):
    return {
        "id": appended_id,
        "createdAt": 2,
        "items": [{"id": f"{appended_id}-i", "name": "Extra", "price": price}],
        **payment,
    }


@pytest.fixture
def order_with_appends(make_order):
    """Main total 100, appended totals 50 and 30."""
    return make_order(
        items=[
            {"id": "m1", "name": "Adobo", "price": 40, "quantity": 2},
            {"id": "m2", "name": "Rice", "price": 20},
        ],
        appended=[_appended("a1", 50), _appended("a2", 30)],
    )


class TestComputeTotals:
    def test_total_includes_appended_orders(self, order_with_appends):
        assert order_total(order_with_appends) == Decimal("180.00")

    def test_unpaid_order(self, order_with_appends):
        totals = PaymentReconciler.compute_totals(order_with_appends)
        assert totals.paid_amount == Decimal("0")
        assert totals.pending_amount == Decimal("180.00")
        assert totals.badge == PaymentBadge.UNPAID

    def test_legacy_paid_without_amount_counts_full_total(self, make_order):
        order = make_order(isPaid=True, paymentMethod="cash")

        totals = PaymentReconciler.compute_totals(order)

        assert totals.total == Decimal("100.00")
        assert totals.paid_amount == Decimal("100.00")
        assert totals.pending_amount == Decimal("0")
        assert PaymentReconciler.compute_totals(order) == totals

    def test_partial_payment(self, order_with_appends):
        PaymentReconciler.mark_paid(order_with_appends, PaymentMethod.GCASH)

        totals = PaymentReconciler.compute_totals(order_with_appends)

        assert totals.paid_amount == Decimal("100.00")
        assert totals.pending_amount == Decimal("80.00")
        assert totals.is_partially_paid
        assert totals.badge == PaymentBadge.PARTIAL

    def test_pending_never_negative(self, make_order):
        order = make_order(isPaid=True, paymentMethod="cash", paidAmount=250)
        totals = PaymentReconciler.compute_totals(order)
        assert totals.pending_amount == Decimal("0")
        assert not totals.is_partially_paid

    def test_recorded_amount_wins_over_item_total(self, make_order):
        order = make_order(isPaid=True, paymentMethod="cash", paidAmount=60)
        totals = PaymentReconciler.compute_totals(order)
        assert totals.paid_amount == Decimal("60.00")
        assert totals.pending_amount == Decimal("40.00")
        assert not PaymentReconciler.is_fully_paid(order)


class TestMarkPaid:
    def test_mark_appended_order_paid(self, order_with_appends):
        appended = order_with_appends.appended_orders[0]
        PaymentReconciler.mark_paid(appended, "cash", paid_amount=50, amount_received=100)

        assert appended.is_paid
        assert appended.payment_method == PaymentMethod.CASH
        assert PaymentReconciler.compute_appended_totals(appended).pending_amount == 0

    def test_split_goes_through_split_helper(self, make_order):
        with pytest.raises(ValidationError):
            PaymentReconciler.mark_paid(make_order(), PaymentMethod.SPLIT)

    def test_mark_unpaid_clears_amounts(self, make_order):
        order = make_order()
        PaymentReconciler.mark_split_paid(order, 30, 70)
        PaymentReconciler.mark_unpaid(order)

        assert not order.is_paid
        assert order.payment_method is None
        assert order.cash_amount is None
        assert order.paid_amount is None


class TestSplitPayment:
    def test_split_summing_to_total_is_accepted(self, make_order):
        order = make_order()
        PaymentReconciler.mark_split_paid(order, 30, 70)

        assert order.payment_method == PaymentMethod.SPLIT
        assert order.cash_amount == 30
        assert order.gcash_amount == 70
        assert PaymentReconciler.is_fully_paid(order)

    def test_split_sum_mismatch_is_rejected(self, make_order):
        order = make_order()
        with pytest.raises(ValidationError) as exc_info:
            PaymentReconciler.mark_split_paid(order, 40, 70)

        assert exc_info.value.code == "VAL_002"
        assert not order.is_paid

    def test_negative_portion_is_rejected(self, make_order):
        with pytest.raises(ValidationError):
            PaymentReconciler.mark_split_paid(make_order(), -10, 110)

    def test_amount_received_must_cover_settlement(self, make_order):
        with pytest.raises(ValidationError):
            PaymentReconciler.validate_split_payment(30, 70, 100, amount_received=90)


class TestMarkAllPaid:
    def test_single_method_settles_everything(self, order_with_appends):
        settled = PaymentReconciler.mark_all_paid(order_with_appends, PaymentMethod.CASH)

        assert settled == ["a1", "a2"]
        assert all(a.payment_method == PaymentMethod.CASH for a in order_with_appends.appended_orders)
        assert PaymentReconciler.is_fully_paid(order_with_appends)

    def test_already_paid_appended_orders_are_left_alone(self, make_order):
        order = make_order(
            appended=[_appended("a1", 50, isPaid=True, paymentMethod="gcash"), _appended("a2", 30)]
        )
        settled = PaymentReconciler.mark_all_paid(order, PaymentMethod.CASH)

        assert settled == ["a2"]
        assert order.appended_orders[0].payment_method == PaymentMethod.GCASH

    def test_split_breakdown_lives_on_main_order_only(self, order_with_appends):
        settled = PaymentReconciler.mark_all_paid_split(order_with_appends, 80, 100, 200)

        assert settled == ["a1", "a2"]
        assert order_with_appends.cash_amount == 80
        assert order_with_appends.gcash_amount == 100
        for appended in order_with_appends.appended_orders:
            assert appended.is_paid
            assert appended.payment_method is None
            assert appended.paid_amount is None

        totals = PaymentReconciler.compute_totals(order_with_appends)
        assert totals.paid_amount == Decimal("180.00")
        assert totals.pending_amount == 0

    def test_split_settles_only_outstanding_amount(self, make_order):
        order = make_order(
            appended=[_appended("a1", 50, isPaid=True, paymentMethod="cash"), _appended("a2", 30)]
        )

        with pytest.raises(ValidationError):
            PaymentReconciler.mark_all_paid_split(order, 100, 80)

        settled = PaymentReconciler.mark_all_paid_split(order, 60, 70)
        assert settled == ["a2"]
        assert order.appended_orders[0].payment_method == PaymentMethod.CASH
        assert PaymentReconciler.compute_totals(order).paid_amount == Decimal("180.00")

    def test_split_covers_shortfall_of_partially_paid_appended_order(self, make_order):
        order = make_order(
            appended=[
                {
                    "id": "a1",
                    "createdAt": 1,
                    "isPaid": True,
                    "paymentMethod": "cash",
                    "paidAmount": 20,
                    "items": [{"id": "x", "name": "Halo-halo", "price": 50}],
                }
            ]
        )
        assert PaymentReconciler.compute_totals(order).pending_amount == Decimal("130.00")

        settled = PaymentReconciler.mark_all_paid_split(order, 130, 0)

        assert settled == []
        assert order.paid_amount == 130
        totals = PaymentReconciler.compute_totals(order)
        assert totals.paid_amount == Decimal("150.00")
        assert totals.pending_amount == 0
        assert PaymentReconciler.is_fully_paid(order)

    def test_split_rejected_once_main_order_is_paid(self, order_with_appends):
        PaymentReconciler.mark_paid(order_with_appends, PaymentMethod.CASH)
        with pytest.raises(ValidationError):
            PaymentReconciler.mark_all_paid_split(order_with_appends, 40, 40)
        assert order_with_appends.payment_method == PaymentMethod.CASH
