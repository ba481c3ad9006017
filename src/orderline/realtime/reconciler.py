"""
EventReconciler - merges push-channel events into the local OrderStore.

Snapshots replace the local record wholesale. Every apply is idempotent and an
update for an unknown id is treated as a create, so redelivered or reordered
events converge on the same collection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import ValidationError as SchemaValidationError

from orderline.constants import EventType, OnlinePaymentStatus
from orderline.realtime.channel import EventChannel
from orderline.schemas import PushEvent, parse_event
from orderline.store import OrderStore

logger = logging.getLogger(__name__)


class ApplyResult(Enum):
    INSERTED = "inserted"
    REPLACED = "replaced"
    REMOVED = "removed"
    UNCHANGED = "unchanged"
    IGNORED = "ignored"


class EventReconciler:
    def __init__(self, store: OrderStore, branch: str | None = None):
        self.store = store
        self.branch = branch or None

    def apply(self, event_type: str, payload: Any) -> ApplyResult:
        """Apply one raw event. Malformed payloads are logged and dropped."""
        try:
            event = parse_event(event_type, payload)
        except (SchemaValidationError, ValueError) as exc:
            logger.warning(f"Ignoring malformed '{event_type}' event: {exc}")
            return ApplyResult.IGNORED
        return self.apply_event(event)

    def apply_event(self, event: PushEvent) -> ApplyResult:
        with self.store.locked():
            if event.type == EventType.ORDER_DELETED:
                removed = self.store.remove(event.order_id)
                result = ApplyResult.REMOVED if removed else ApplyResult.UNCHANGED
            elif event.order is None:
                result = self._confirm_online_payment(event.order_id)
            elif self.branch and event.order.branch_id and event.order.branch_id != self.branch:
                result = ApplyResult.IGNORED
            else:
                result = self._replace(event)

        logger.debug(f"Event {event.type.value} for {event.order_id}: {result.value}")
        return result

    def _replace(self, event: PushEvent) -> ApplyResult:
        incoming = event.order
        current = self.store.get(incoming.id)
        if (
            current is not None
            and current.model_dump() == incoming.model_dump()
            and self.store.is_synced(incoming.id)
        ):
            return ApplyResult.UNCHANGED
        self.store.put(incoming, synced=True)
        return ApplyResult.INSERTED if current is None else ApplyResult.REPLACED

    def _confirm_online_payment(self, order_id: str) -> ApplyResult:
        order = self.store.get(order_id)
        if order is None:
            # The next refetch brings the order in.
            return ApplyResult.IGNORED
        if order.online_payment_status == OnlinePaymentStatus.CONFIRMED:
            return ApplyResult.UNCHANGED
        order.online_payment_status = OnlinePaymentStatus.CONFIRMED
        self.store.put(order, synced=True)
        return ApplyResult.REPLACED

    def bind(self, channel: EventChannel) -> Callable[[], None]:
        """Subscribe to every order event on `channel`; returns an unsubscribe-all."""
        unsubscribers = [channel.subscribe(kind, self.apply) for kind in EventType]

        def unbind() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return unbind
