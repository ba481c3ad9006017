"""Tests for kitchen queue and load estimates."""

import pytest

from orderline.constants import KitchenSeverity
from orderline.services.kitchen_queue_service import KitchenQueueEstimator, severity_for


def _item(item_id, status="pending", preparing_at=None, served_at=None):
    return {
        "id": item_id,
        "name": "Dish",
        "price": 10,
        "status": status,
        "preparingAt": preparing_at,
        "servedAt": served_at,
    }


@pytest.fixture
def estimator():
    return KitchenQueueEstimator(per_order_minutes=5, capacity=10)


class TestQueueStats:
    def test_six_active_orders_wait_thirty_minutes(self, estimator, make_order):
        orders = [make_order() for _ in range(6)]
        stats = estimator.queue_stats(orders)

        assert stats.orders_in_queue == 6
        assert stats.estimated_wait_minutes == 30

    def test_fully_served_orders_leave_the_queue(self, estimator, make_order):
        served = make_order(items=[_item("s1", "served")])
        with_pending_append = make_order(
            items=[_item("s2", "served")],
            appended=[{"id": "a1", "createdAt": 1, "items": [_item("p1")]}],
        )
        assert estimator.queue_stats([served, with_pending_append]).orders_in_queue == 1

    def test_unconfirmed_online_orders_are_invisible(self, estimator, make_order):
        unconfirmed = make_order(orderSource="online", onlinePaymentStatus="pending")
        confirmed = make_order(orderSource="online", onlinePaymentStatus="confirmed")

        assert estimator.queue_stats([unconfirmed, confirmed]).orders_in_queue == 1
        assert estimator.status([unconfirmed]).pending_items_count == 0


class TestKitchenStatus:
    def test_eight_orders_is_high_load(self, estimator, make_order):
        status = estimator.status([make_order() for _ in range(8)])

        assert status.kitchen_load_percent == 80
        assert status.severity == KitchenSeverity.HIGH
        assert status.estimated_wait_minutes == 40

    def test_counts_and_average_prep_time(self, estimator, make_order):
        order = make_order(
            items=[
                _item("a", "pending"),
                _item("b", "preparing", preparing_at=0),
                _item("c", "served", preparing_at=0, served_at=240_000),
                _item("d", "served", preparing_at=60_000, served_at=420_000),
            ]
        )
        status = estimator.status([order])

        assert status.pending_items_count == 1
        assert status.preparing_items_count == 1
        assert status.average_prep_time_minutes == 5
        assert status.severity == KitchenSeverity.LOW

    def test_load_is_capped(self, estimator, make_order):
        assert estimator.status([make_order() for _ in range(15)]).kitchen_load_percent == 100

    @pytest.mark.parametrize(
        "load,severity",
        [(0, KitchenSeverity.LOW), (49, KitchenSeverity.LOW), (50, KitchenSeverity.MEDIUM),
         (79, KitchenSeverity.MEDIUM), (80, KitchenSeverity.HIGH)],
    )
    def test_severity_thresholds(self, load, severity):
        assert severity_for(load) == severity

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            KitchenQueueEstimator(capacity=0)
