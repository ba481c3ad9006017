"""
OfflineSyncQueue - optimistic local writes mirrored to the remote store.

Every mutation validates and applies to a copy of the order, lands in the
OrderStore unsynced, then the matching remote calls run through `dispatch`.
The read-modify-write runs under the store lock, so push events and refetches
land either before or after a mutation, never in the middle of one.
A failed remote call never rolls the local change back: the terminal goes
offline, a notice is emitted and the next successful refetch replaces the
local collection with the server's.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from threading import Lock
from typing import Any

from pydantic.alias_generators import to_camel

from orderline.constants import ItemStatus, OrderType, PaymentMethod
from orderline.datetime_utils import now_ms
from orderline.error_catalog import catalog_entry
from orderline.permissions import Actor
from orderline.schemas import AppendedOrder, Order, OrderItem, OrderNote, dump_order
from orderline.services.appended_order_service import AppendedOrderMerger, DeletionResult
from orderline.services.item_state_machine import InvalidTransitionError, ItemStatusStateMachine
from orderline.services.online_order_service import confirm_online_payment
from orderline.services.order_service import add_note, find_appended, find_item, new_order
from orderline.services.payment_service import PaymentReconciler
from orderline.store import OrderStore
from orderline.sync.remote import (
    OrdersApiClient,
    RemoteRequestError,
    RemoteUnavailableError,
)

logger = logging.getLogger(__name__)

RemoteCall = Callable[[], Any]

_ITEM_PROGRESS_FIELDS = {
    "preparing_at",
    "ready_at",
    "served_at",
    "prepared_by",
    "prepared_by_email",
    "served_by",
    "served_by_email",
}


@dataclass(frozen=True)
class SyncStatus:
    online: bool = True
    syncing: bool = False
    last_sync: int | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "online": self.online,
            "syncing": self.syncing,
            "lastSync": self.last_sync,
            "error": self.error,
        }


@dataclass(frozen=True)
class SyncNotice:
    """Non-blocking operator message about the remote store."""

    code: str
    title: str
    message: str
    order_id: str | None = None

    @classmethod
    def from_catalog(cls, code: str, order_id: str | None = None, detail: str | None = None):
        entry = catalog_entry(code)
        return cls(
            code=code,
            title=entry["title"],
            message=detail or entry["description"],
            order_id=order_id,
        )


def inline_dispatch(task: Callable[[], None]) -> None:
    task()


class OfflineSyncQueue:
    def __init__(
        self,
        store: OrderStore,
        client: OrdersApiClient,
        state_machine: ItemStatusStateMachine | None = None,
        retries: int = 1,
        branch: str | None = None,
        dispatch: Callable[[Callable[[], None]], Any] = inline_dispatch,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.client = client
        self.state_machine = state_machine or ItemStatusStateMachine(clock=clock)
        self.retries = max(0, retries)
        self.branch = branch or None
        self._dispatch = dispatch
        self._clock = clock
        self._status = SyncStatus()
        self._status_lock = Lock()
        self._status_listeners: list[Callable[[SyncStatus], None]] = []
        self._notice_listeners: list[Callable[[SyncNotice], None]] = []
        # Local commit count per order, written under the store lock.
        self._revisions: dict[str, int] = {}

    # -- status --------------------------------------------------------------

    @property
    def status(self) -> SyncStatus:
        with self._status_lock:
            return self._status

    @property
    def online(self) -> bool:
        return self.status.online

    def subscribe(self, listener: Callable[[SyncStatus], None]) -> Callable[[], None]:
        return self._add_listener(self._status_listeners, listener)

    def on_notice(self, listener: Callable[[SyncNotice], None]) -> Callable[[], None]:
        return self._add_listener(self._notice_listeners, listener)

    @staticmethod
    def _add_listener(listeners: list, listener) -> Callable[[], None]:
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def _set_status(self, **changes) -> SyncStatus:
        with self._status_lock:
            self._status = replace(self._status, **changes)
            status = self._status
        for listener in list(self._status_listeners):
            listener(status)
        return status

    def _notify(self, notice: SyncNotice) -> None:
        for listener in list(self._notice_listeners):
            listener(notice)

    # -- orders --------------------------------------------------------------

    def create_order(
        self,
        customer_name: str,
        items: list[OrderItem | dict[str, Any]],
        order_taker: Actor | None = None,
        order_type: OrderType | str = OrderType.DINE_IN,
        **extra: Any,
    ) -> Order:
        if self.branch and "branch_id" not in extra:
            extra["branch_id"] = self.branch
        order = new_order(customer_name, items, order_taker, order_type, **extra)
        with self.store.locked():
            self._commit(order, "create order", [lambda: self.client.create_order(order)])
        return order

    def delete_order(self, order_id: str) -> None:
        with self.store.editing(order_id) as order:
            AppendedOrderMerger.ensure_order_deletable(order)
            self.store.remove(order_id)
            calls = [lambda: self.client.delete_order(order_id)]
            self._push(order_id, "delete order", calls, self._bump(order_id), removed=True)

    def add_note(self, order_id: str, content: str, author: Actor | None = None) -> OrderNote:
        with self.store.editing(order_id) as order:
            note = add_note(order, content, author, when=self._clock())
            self._commit(order, "add note", self._update_fields(order, "notes"))
        return note

    def confirm_online_payment(self, order_id: str) -> Order:
        with self.store.editing(order_id) as order:
            confirm_online_payment(order)
            self._commit(
                order, "confirm online payment", [lambda: self.client.confirm_online_payment(order_id)]
            )
        return order

    # -- appended orders and items -------------------------------------------

    def append_items(
        self, order_id: str, items: list[OrderItem | dict[str, Any]], timestamp: int | None = None
    ) -> AppendedOrder:
        with self.store.editing(order_id) as order:
            appended = AppendedOrderMerger.append_items(order, items, timestamp or self._clock())
            call = lambda: self.client.append_items(  # noqa: E731
                order_id, appended.items, appended.created_at, appended.id
            )
            self._commit(order, "append items", [call])
        return appended

    def delete_appended_order(self, order_id: str, appended_id: str) -> None:
        with self.store.editing(order_id) as order:
            AppendedOrderMerger.delete_appended_order(order, appended_id)
            self._commit(
                order,
                "delete appended order",
                [lambda: self.client.delete_appended_order(order_id, appended_id)],
            )

    def delete_item(
        self,
        order_id: str,
        item_id: str,
        appended_id: str | None = None,
        justification: str | None = None,
    ) -> DeletionResult:
        with self.store.editing(order_id) as order:
            result = AppendedOrderMerger.delete_item(order, item_id, appended_id, justification)
            if result.removed_appended_order:
                calls = [lambda: self.client.delete_appended_order(order_id, appended_id)]
            else:
                calls = self._update_fields(order, "items", "appended_orders")
            self._commit(order, "delete item", calls)
        return result

    def update_item_status(
        self,
        order_id: str,
        item_id: str,
        target_status: ItemStatus | str,
        actor: Actor,
        appended_id: str | None = None,
    ) -> OrderItem:
        with self.store.editing(order_id) as order:
            before = find_item(order, item_id, appended_id).status
            item = self.state_machine.apply_to_order(
                order, item_id, ItemStatus(target_status), actor, appended_id
            )
            if item.status != before:
                self._commit(order, "update item status", [self._status_call(order_id, item, appended_id)])
        return item

    def advance_item(
        self, order_id: str, item_id: str, actor: Actor, appended_id: str | None = None
    ) -> OrderItem:
        """Single-click advancement to the next status; served items stay served."""
        with self.store.locked():
            current = find_item(self.store.require(order_id), item_id, appended_id).status
            target = self.state_machine.next_status(current)
            if target is None:
                raise InvalidTransitionError(
                    f"Item {item_id} is already served", current, ItemStatus.SERVED
                )
            return self.update_item_status(order_id, item_id, target, actor, appended_id)

    def reset_item(
        self,
        order_id: str,
        item_id: str,
        actor: Actor,
        justification: str | None,
        appended_id: str | None = None,
    ) -> OrderItem:
        with self.store.editing(order_id) as order:
            item = find_item(order, item_id, appended_id)
            self.state_machine.reset_item(item, actor, justification)
            self._commit(order, "reset item", [self._status_call(order_id, item, appended_id)])
        return item

    def _status_call(self, order_id: str, item: OrderItem, appended_id: str | None) -> RemoteCall:
        attribution = {
            to_camel(name): getattr(item, name)
            for name in sorted(_ITEM_PROGRESS_FIELDS)
        }
        return lambda: self.client.update_item_status(
            order_id, item.id, item.status, attribution, appended_id
        )

    # -- payments ------------------------------------------------------------

    def mark_paid(
        self,
        order_id: str,
        method: PaymentMethod | str,
        appended_id: str | None = None,
        paid_amount=None,
        amount_received=None,
    ) -> Order:
        with self.store.editing(order_id) as order:
            target = find_appended(order, appended_id) if appended_id else order
            PaymentReconciler.mark_paid(target, method, paid_amount, amount_received)
            self._commit(order, "mark paid", [self._payment_call(order_id, target, appended_id)])
        return order

    def mark_split_paid(self, order_id: str, cash_amount, gcash_amount, amount_received=None) -> Order:
        with self.store.editing(order_id) as order:
            PaymentReconciler.mark_split_paid(order, cash_amount, gcash_amount, amount_received)
            self._commit(order, "mark split paid", [self._payment_call(order_id, order)])
        return order

    def mark_unpaid(self, order_id: str, appended_id: str | None = None) -> Order:
        with self.store.editing(order_id) as order:
            target = find_appended(order, appended_id) if appended_id else order
            PaymentReconciler.mark_unpaid(target)
            self._commit(order, "mark unpaid", [self._payment_call(order_id, target, appended_id)])
        return order

    def mark_all_paid(self, order_id: str, method: PaymentMethod | str) -> Order:
        with self.store.editing(order_id) as order:
            main_was_paid = order.is_paid
            settled = PaymentReconciler.mark_all_paid(order, method)
            calls = [] if main_was_paid else [self._payment_call(order_id, order)]
            calls += [
                self._payment_call(order_id, find_appended(order, aid), aid) for aid in settled
            ]
            self._commit(order, "mark all paid", calls)
        return order

    def mark_all_paid_split(self, order_id: str, cash_amount, gcash_amount, amount_received=None) -> Order:
        with self.store.editing(order_id) as order:
            settled = PaymentReconciler.mark_all_paid_split(
                order, cash_amount, gcash_amount, amount_received
            )
            calls = [self._payment_call(order_id, order)]
            calls += [
                self._payment_call(order_id, find_appended(order, aid), aid) for aid in settled
            ]
            self._commit(order, "mark all paid (split)", calls)
        return order

    def _payment_call(self, order_id: str, target, appended_id: str | None = None) -> RemoteCall:
        """One remote call per payable; main and appended orders are never batched."""
        method = target.payment_method.value if target.payment_method else None
        return lambda: self.client.toggle_payment(
            order_id,
            target.is_paid,
            method,
            cash_amount=target.cash_amount,
            gcash_amount=target.gcash_amount,
            paid_amount=target.paid_amount,
            amount_received=target.amount_received,
            appended_id=appended_id,
        )

    # -- remote --------------------------------------------------------------

    def _update_fields(self, order: Order, *fields: str) -> list[RemoteCall]:
        wire = dump_order(order)
        payload = {}
        for name in fields:
            alias = to_camel(name)
            payload[alias] = wire.get(alias, [])
        return [lambda: self.client.update_order(order.id, payload)]

    def _bump(self, order_id: str) -> int:
        revision = self._revisions.get(order_id, 0) + 1
        self._revisions[order_id] = revision
        return revision

    def _commit(self, order: Order, action: str, calls: list[RemoteCall]) -> None:
        """Store `order` unsynced and queue its remote calls. Callers hold the store lock."""
        self.store.put(order, synced=False)
        self._push(order.id, action, calls, self._bump(order.id))

    def _push(
        self,
        order_id: str,
        action: str,
        calls: list[RemoteCall],
        revision: int,
        removed: bool = False,
    ) -> None:
        if not calls:
            self._mark_synced(order_id, revision)
            return
        self._dispatch(lambda: self._run(order_id, action, calls, revision, removed))

    def _mark_synced(self, order_id: str, revision: int) -> None:
        """Only the latest local commit of an order may flip it back to synced."""
        with self.store.locked():
            if self._revisions.get(order_id) == revision:
                self.store.mark_synced(order_id)

    def _run(
        self, order_id: str, action: str, calls: list[RemoteCall], revision: int, removed: bool
    ) -> None:
        self._set_status(syncing=True)
        try:
            for call in calls:
                self._call_with_retries(call)
        except RemoteUnavailableError as exc:
            logger.warning(f"Failed to {action} for order {order_id}, keeping local change: {exc}")
            self._set_status(online=False, syncing=False, error=str(exc))
            self._notify(SyncNotice.from_catalog("SYNC_001", order_id))
            return
        except RemoteRequestError as exc:
            logger.warning(f"Remote store rejected '{action}' for order {order_id}: {exc}")
            self._set_status(syncing=False, error=str(exc))
            self._notify(SyncNotice.from_catalog("SYNC_002", order_id, str(exc)))
            return
        except Exception as exc:
            # Runs on the sync worker; nobody reads its result.
            logger.error(f"Unexpected error trying to {action} for order {order_id}: {exc}", exc_info=True)
            self._set_status(syncing=False, error=str(exc))
            self._notify(SyncNotice.from_catalog("SYNC_004", order_id))
            return

        if not removed:
            self._mark_synced(order_id, revision)
        self._went_online()
        self._set_status(online=True, syncing=False, last_sync=self._clock(), error=None)

    def _call_with_retries(self, call: RemoteCall) -> Any:
        for attempt in range(self.retries + 1):
            try:
                return call()
            except RemoteUnavailableError:
                if attempt == self.retries:
                    raise
                logger.debug(f"Remote call failed, retrying ({attempt + 1}/{self.retries})")

    def _went_online(self) -> None:
        if not self.online:
            logger.info("Remote store reachable again")
            self._notify(SyncNotice.from_catalog("SYNC_003"))

    def refetch(self) -> bool:
        """
        Replace the local collection with the server's orders.

        Returns False when the remote store could not be reached; the local
        collection is then left as it is.
        """
        self._set_status(syncing=True)
        try:
            orders = self._call_with_retries(lambda: self.client.list_orders(branch=self.branch))
        except RemoteUnavailableError as exc:
            if self.online:
                logger.warning(f"Refetch failed, working offline: {exc}")
            self._set_status(online=False, syncing=False, error=str(exc))
            return False
        except RemoteRequestError as exc:
            logger.warning(f"Refetch rejected by the remote store: {exc}")
            self._set_status(syncing=False, error=str(exc))
            return False
        except Exception as exc:
            self._set_status(syncing=False, error=str(exc))
            raise

        self.store.replace_all(orders, synced=True)
        self._went_online()
        self._set_status(online=True, syncing=False, last_sync=self._clock(), error=None)
        logger.debug(f"Refetched {len(orders)} orders")
        return True
