from orderline.services.appended_order_service import AppendedOrderMerger
from orderline.services.business_day_service import BusinessDayBucketer, SalesSummary
from orderline.services.item_state_machine import (
    InvalidTransitionError,
    ItemStatusStateMachine,
    TransitionPermissionError,
)
from orderline.services.kitchen_queue_service import KitchenQueueEstimator
from orderline.services.order_service import OrderAggregate, dashboard_sections
from orderline.services.payment_service import PaymentReconciler, PaymentTotals

__all__ = [
    "AppendedOrderMerger",
    "BusinessDayBucketer",
    "InvalidTransitionError",
    "ItemStatusStateMachine",
    "KitchenQueueEstimator",
    "OrderAggregate",
    "PaymentReconciler",
    "PaymentTotals",
    "SalesSummary",
    "TransitionPermissionError",
    "dashboard_sections",
]
