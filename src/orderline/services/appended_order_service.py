"""
Appended orders: batches of items added after an order was submitted.

Each batch is its own payable and deletable unit. Appending never touches the
main items or earlier batches.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from orderline.constants import ItemStatus
from orderline.datetime_utils import now_ms
from orderline.schemas import AppendedOrder, Order, OrderItem
from orderline.services.order_service import find_appended, reset_item_progress
from orderline.store import OrderNotFoundError
from orderline.validation import ValidationError, validate_justification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeletionResult:
    """What a single-item delete actually removed."""

    item_id: str
    appended_id: str | None
    removed_appended_order: bool
    justification: str | None


class AppendedOrderMerger:
    @staticmethod
    def can_delete(items_owner: Order | AppendedOrder) -> bool:
        """A (sub-)order is deletable only while all of its items are pending."""
        return all(item.status == ItemStatus.PENDING for item in items_owner.items)

    @staticmethod
    def can_delete_order(order: Order) -> bool:
        return AppendedOrderMerger.can_delete(order) and all(
            AppendedOrderMerger.can_delete(a) for a in order.appended_orders
        )

    @staticmethod
    def append_items(
        order: Order,
        new_items: list[OrderItem | dict[str, Any]],
        timestamp: int | None = None,
        appended_id: str | None = None,
    ) -> AppendedOrder:
        if not new_items:
            raise ValidationError("Appended order must have at least one item", code="VAL_004")

        items = [
            OrderItem.model_validate(i) if isinstance(i, dict) else i.model_copy()
            for i in new_items
        ]
        for item in items:
            reset_item_progress(item)

        appended = AppendedOrder(
            id=appended_id or str(uuid.uuid4()),
            created_at=timestamp or now_ms(),
            items=items,
        )
        order.appended_orders.append(appended)
        logger.debug(f"Appended {len(items)} items to order {order.id} as {appended.id}")
        return appended

    @staticmethod
    def delete_appended_order(order: Order, appended_id: str) -> AppendedOrder:
        appended = find_appended(order, appended_id)
        if not AppendedOrderMerger.can_delete(appended):
            raise ValidationError(
                "Only appended orders whose items are all pending can be deleted",
                code="VAL_006",
            )
        order.appended_orders.remove(appended)
        return appended

    @staticmethod
    def ensure_order_deletable(order: Order) -> None:
        if not AppendedOrderMerger.can_delete_order(order):
            raise ValidationError(
                "Only orders whose items are all pending can be deleted", code="VAL_006"
            )

    @staticmethod
    def delete_item(
        order: Order,
        item_id: str,
        appended_id: str | None = None,
        justification: str | None = None,
    ) -> DeletionResult:
        """
        Remove one item from the main order or an appended order.

        Items past `pending` need a justification. Removing the only item of an
        appended order removes the whole appended order; the main order's last
        item cannot be removed this way.
        """
        owner: Order | AppendedOrder = find_appended(order, appended_id) if appended_id else order
        item = next((i for i in owner.items if i.id == item_id), None)
        if item is None:
            raise OrderNotFoundError(f"Item {item_id} not found in order {order.id}")

        reason = None
        if item.status != ItemStatus.PENDING:
            reason = validate_justification(justification)

        if len(owner.items) == 1:
            if appended_id is None:
                raise ValidationError(
                    "Cannot delete the last item. Delete the entire order instead.",
                    code="VAL_001",
                )
            order.appended_orders.remove(owner)
            logger.info(f"Removed appended order {appended_id} with its last item {item_id}")
            return DeletionResult(item_id, appended_id, True, reason)

        owner.items.remove(item)
        if reason:
            logger.info(f"Item {item_id} ({item.status.value}) deleted from {order.id}: {reason}")
        return DeletionResult(item_id, appended_id, False, reason)
