"""
Item State Machine - per-item preparation status and crew attribution.

Items only move forward: pending -> preparing -> ready -> served. Each step is
authorised through `orderline.permissions.can_transition` and may stamp
timestamps and attribution on the item.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from orderline.constants import ITEM_STATUS_SEQUENCE, ItemStatus
from orderline.datetime_utils import now_ms
from orderline.permissions import Actor, can_transition, has_role_for, transition_policy
from orderline.schemas import Order, OrderItem
from orderline.services.order_service import (
    find_item,
    reset_item_progress,
    stamp_all_items_served,
)
from orderline.validation import ValidationError, validate_justification

logger = logging.getLogger(__name__)


class TransitionPermissionError(PermissionError):
    """Raised when the actor may not perform a status change. Nothing is mutated."""

    def __init__(
        self,
        message: str,
        current_status: ItemStatus,
        target_status: ItemStatus,
        code: str = "PERM_001",
    ):
        super().__init__(message)
        self.current_status = current_status
        self.target_status = target_status
        self.code = code


class InvalidTransitionError(ValidationError):
    """Raised for a status change that is not part of the forward sequence."""

    def __init__(self, message: str, current_status: ItemStatus, target_status: ItemStatus):
        super().__init__(message, code="VAL_007")
        self.current_status = current_status
        self.target_status = target_status


@dataclass
class TransitionContext:
    """Context for one item status change."""

    item: OrderItem
    target_status: ItemStatus
    actor: Actor
    now: int


class ItemStatusStateMachine:
    """
    State machine for order items.

    Responsibilities:
    - Validate allowed transitions
    - Check actor capabilities and item ownership
    - Apply timestamps and attribution
    """

    def __init__(self, clock: Callable[[], int] = now_ms):
        self._clock = clock
        self._transition_handlers: dict[ItemStatus, Callable[[TransitionContext], None]] = {}
        self._register_handlers()

    def _register_handlers(self) -> None:
        self._transition_handlers[ItemStatus.PREPARING] = self._handle_start_preparing
        self._transition_handlers[ItemStatus.READY] = self._handle_ready
        self._transition_handlers[ItemStatus.SERVED] = self._handle_serve

    @staticmethod
    def next_status(current: ItemStatus) -> ItemStatus | None:
        """
        Status a single-click "advance" moves to.

        `served` is terminal and returns None; going back to pending is only
        possible through `reset_item`.
        """
        index = ITEM_STATUS_SEQUENCE.index(ItemStatus(current))
        if index + 1 >= len(ITEM_STATUS_SEQUENCE):
            return None
        return ITEM_STATUS_SEQUENCE[index + 1]

    @staticmethod
    def button_label(current: ItemStatus) -> str:
        nxt = ItemStatusStateMachine.next_status(current)
        if nxt is None:
            return "Served"
        return transition_policy(current, nxt)["label"]

    def can_transition(self, actor: Actor, item: OrderItem, target_status: ItemStatus) -> bool:
        current = ItemStatus(item.status)
        target = ItemStatus(target_status)
        return transition_policy(current, target) is not None and can_transition(
            actor, item, current, target
        )

    def validate_transition(self, context: TransitionContext) -> None:
        current = ItemStatus(context.item.status)
        target = ItemStatus(context.target_status)

        if transition_policy(current, target) is None:
            raise InvalidTransitionError(
                f"Invalid transition: {current.value} -> {target.value}", current, target
            )

        if can_transition(context.actor, context.item, current, target):
            return
        if not has_role_for(context.actor, current, target):
            raise TransitionPermissionError(
                f"Role not allowed to move an item from {current.value} to {target.value}",
                current,
                target,
            )
        raise TransitionPermissionError(
            "Only the crew member who prepared this item can update its status.",
            current,
            target,
            code="PERM_002",
        )

    def apply_transition(
        self, item: OrderItem, target_status: ItemStatus, actor: Actor
    ) -> bool:
        """
        Move `item` to `target_status` in place.

        Re-applying the status the item already has is a no-op and returns
        False; a real change returns True.
        """
        if ItemStatus(item.status) == ItemStatus(target_status):
            return False

        context = TransitionContext(
            item=item, target_status=ItemStatus(target_status), actor=actor, now=self._clock()
        )
        try:
            self.validate_transition(context)
        except (TransitionPermissionError, InvalidTransitionError) as exc:
            logger.warning(f"Rejected status change on item {item.id}: {exc}")
            raise

        self._transition_handlers[context.target_status](context)
        item.status = context.target_status
        return True

    def apply_to_order(
        self,
        order: Order,
        item_id: str,
        target_status: ItemStatus,
        actor: Actor,
        appended_id: str | None = None,
    ) -> OrderItem:
        """Transition one item of `order` and stamp `all_items_served_at` when due."""
        item = find_item(order, item_id, appended_id)
        if self.apply_transition(item, target_status, actor):
            stamp_all_items_served(order, item.served_at or self._clock())
        return item

    def reset_item(self, item: OrderItem, actor: Actor, justification: str | None) -> None:
        """Explicit manual reset of an item back to pending (order-takers only)."""
        current = ItemStatus(item.status)
        if not actor.is_order_taker:
            raise TransitionPermissionError(
                "Only an order-taker can reset an item", current, ItemStatus.PENDING
            )
        reason = validate_justification(justification)

        reset_item_progress(item)
        logger.info(f"Item {item.id} reset from {current.value} by {actor.email}: {reason}")

    def _handle_start_preparing(self, context: TransitionContext) -> None:
        item = context.item
        if not item.prepared_by and not item.prepared_by_email:
            item.prepared_by = context.actor.name
            item.prepared_by_email = context.actor.email
        if item.preparing_at is None:
            item.preparing_at = context.now

    def _handle_ready(self, context: TransitionContext) -> None:
        if context.item.ready_at is None:
            context.item.ready_at = context.now

    def _handle_serve(self, context: TransitionContext) -> None:
        item = context.item
        if item.served_at is None:
            item.served_at = context.now
        if not item.served_by and not item.served_by_email:
            item.served_by = context.actor.name
            item.served_by_email = context.actor.email
