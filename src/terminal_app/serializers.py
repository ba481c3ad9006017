"""
Serializers for consistent API responses.
"""

from typing import Any

from orderline.schemas import Order, dump_order
from orderline.services.order_service import OrderAggregate, crew_display, format_duration
from orderline.services.online_order_service import format_order_code


def success_response(data: Any, message: str | None = None) -> dict[str, Any]:
    """Create a standardized success response."""
    response = {"status": "success", "data": data, "error": None}
    if message:
        response["message"] = message
    return response


def error_response(error: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create a standardized error response."""
    response = {"status": "error", "data": None, "error": error}
    if details:
        response["details"] = details
    return response


def serialize_order(order: Order) -> dict[str, Any]:
    """Wire snapshot plus the derived fields dashboards display."""
    aggregate = OrderAggregate(order)
    duration = aggregate.duration_ms()
    data = dump_order(order)
    data.update(
        {
            "progress": aggregate.progress.value,
            "isFullyServed": aggregate.is_fully_served,
            "isFullyPaid": aggregate.is_fully_paid,
            "payment": aggregate.payment.to_dict(),
            "totalQuantity": aggregate.total_quantity,
            "duration": format_duration(duration),
            "orderTaker": crew_display(order.order_taker_name, order.order_taker_email),
        }
    )
    if order.online_order_code:
        data["displayCode"] = format_order_code(order.online_order_code)
    return data
