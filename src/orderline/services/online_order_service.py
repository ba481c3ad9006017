"""
Customer-submitted online orders: order codes and payment confirmation.
"""

from __future__ import annotations

import random
import re
from collections.abc import Iterable

from orderline.constants import (
    ORDER_CODE_ALPHABET,
    ORDER_CODE_LENGTH,
    OnlinePaymentStatus,
    OrderSource,
)
from orderline.datetime_utils import now_ms
from orderline.schemas import Order
from orderline.validation import ValidationError

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_RANDOM_PART = ORDER_CODE_LENGTH - 2


def _base36(value: int) -> str:
    digits = ""
    while value:
        value, remainder = divmod(value, 36)
        digits = _BASE36[remainder] + digits
    return digits or "0"


def generate_order_code(timestamp: int | None = None, rng: random.Random | None = None) -> str:
    """Four random characters followed by the last two base-36 digits of the timestamp."""
    rng = rng or random.SystemRandom()
    prefix = "".join(rng.choice(ORDER_CODE_ALPHABET) for _ in range(_RANDOM_PART))
    suffix = _base36(timestamp if timestamp is not None else now_ms())[-2:].rjust(2, "0")
    return prefix + suffix


def format_order_code(code: str | None) -> str:
    """`A3B7K9` -> `A3B-7K9`; other lengths get a dash every three characters."""
    if not code:
        return ""
    clean = re.sub(r"[-\s]", "", code).upper()
    return "-".join(clean[i : i + 3] for i in range(0, len(clean), 3))


def is_online(order: Order) -> bool:
    return order.order_source == OrderSource.ONLINE.value


def is_awaiting_online_payment(order: Order) -> bool:
    return is_online(order) and order.online_payment_status == OnlinePaymentStatus.PENDING


def online_orders(orders: Iterable[Order]) -> list[Order]:
    return [order for order in orders if is_online(order)]


def online_orders_count(orders: Iterable[Order]) -> int:
    return len(online_orders(orders))


def pending_online_codes(orders: Iterable[Order]) -> list[str]:
    return [
        order.online_order_code
        for order in orders
        if is_awaiting_online_payment(order) and order.online_order_code
    ]


def confirm_online_payment(order: Order) -> None:
    if not is_online(order):
        raise ValidationError(f"Order {order.id} is not an online order")
    order.online_payment_status = OnlinePaymentStatus.CONFIRMED
