"""
OrderStore - the single in-process owner of a terminal's order collection.

Local mutations, push events and refetches all land here. Callers always get
deep copies back, so nothing outside the store can change an order without
going through `put`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from threading import RLock

from sqlalchemy.exc import SQLAlchemyError

from orderline.db import LocalCache
from orderline.schemas import Order, dump_order, parse_order

logger = logging.getLogger(__name__)


class OrderNotFoundError(LookupError):
    """Raised when an order, appended order or item is unknown to this terminal."""

    code = "NOT_FOUND"


class ChangeKind(Enum):
    UPSERTED = "upserted"
    REMOVED = "removed"
    RELOADED = "reloaded"


@dataclass(frozen=True)
class StoreChange:
    kind: ChangeKind
    order_id: str | None = None


StoreListener = Callable[[StoreChange], None]


class OrderStore:
    def __init__(self, cache: LocalCache | None = None):
        self._cache = cache
        self._orders: dict[str, Order] = {}
        self._synced: dict[str, bool] = {}
        self._listeners: list[StoreListener] = []
        self._lock = RLock()
        self._started = False

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Load whatever the local cache still holds from the previous run."""
        if self._started:
            return
        if self._cache is not None:
            self._cache.init_schema()
            entries = []
            for payload, synced in self._cache.load():
                try:
                    entries.append((parse_order(payload), synced))
                except ValueError as exc:
                    logger.warning(f"Dropping unreadable cached order {payload.get('id')}: {exc}")
            with self._lock:
                self._orders = {order.id: order for order, _ in entries}
                self._synced = {order.id: synced for order, synced in entries}
            logger.info(f"Loaded {len(entries)} orders from local cache")
        self._started = True
        self._notify(StoreChange(ChangeKind.RELOADED))

    def stop(self) -> None:
        """Flush the collection to the cache and drop listeners."""
        if self._cache is not None:
            self.flush()
            self._cache.dispose()
        self._listeners.clear()
        self._started = False

    def flush(self) -> None:
        if self._cache is None:
            return
        with self._lock:
            entries = [(dump_order(order), self._synced.get(order.id, False)) for order in self._orders.values()]
        try:
            self._cache.replace_all(entries)
        except SQLAlchemyError as exc:
            logger.error(f"Error flushing local cache: {exc}")

    # -- reads ---------------------------------------------------------------

    def get(self, order_id: str) -> Order | None:
        with self._lock:
            order = self._orders.get(order_id)
            return order.model_copy(deep=True) if order is not None else None

    def require(self, order_id: str) -> Order:
        order = self.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    @contextmanager
    def editing(self, order_id: str) -> Iterator[Order]:
        """
        Hold the store lock across a read-modify-write of one order.

        Push events and refetches wait until the block exits, so the copy
        yielded here cannot go stale before it is `put` back.
        """
        with self._lock:
            yield self.require(order_id)

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield

    def all(self) -> list[Order]:
        """Every order, oldest first."""
        with self._lock:
            orders = [order.model_copy(deep=True) for order in self._orders.values()]
        return sorted(orders, key=lambda o: o.created_at)

    def __contains__(self, order_id: str) -> bool:
        with self._lock:
            return order_id in self._orders

    def __len__(self) -> int:
        with self._lock:
            return len(self._orders)

    def is_synced(self, order_id: str) -> bool:
        with self._lock:
            return self._synced.get(order_id, False)

    def unsynced(self) -> list[Order]:
        """Orders changed locally that the server has not confirmed yet."""
        with self._lock:
            ids = [order_id for order_id, synced in self._synced.items() if not synced]
        return [order for order in (self.get(order_id) for order_id in ids) if order is not None]

    # -- writes --------------------------------------------------------------

    def put(self, order: Order, synced: bool) -> None:
        with self._lock:
            self._orders[order.id] = order.model_copy(deep=True)
            self._synced[order.id] = synced
        self._persist(lambda cache: cache.save(dump_order(order), synced))
        self._notify(StoreChange(ChangeKind.UPSERTED, order.id))

    def remove(self, order_id: str) -> bool:
        with self._lock:
            removed = self._orders.pop(order_id, None)
            self._synced.pop(order_id, None)
        if removed is None:
            return False
        self._persist(lambda cache: cache.delete(order_id))
        self._notify(StoreChange(ChangeKind.REMOVED, order_id))
        return True

    def mark_synced(self, order_id: str) -> None:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                return
            self._synced[order_id] = True
        self._persist(lambda cache: cache.save(dump_order(order), True))

    def replace_all(self, orders: Iterable[Order], synced: bool = True) -> None:
        """Swap the whole collection for `orders` (used by full refetches)."""
        fresh = {order.id: order.model_copy(deep=True) for order in orders}
        with self._lock:
            self._orders = fresh
            self._synced = {order_id: synced for order_id in fresh}
        self._persist(
            lambda cache: cache.replace_all((dump_order(o), synced) for o in fresh.values())
        )
        self._notify(StoreChange(ChangeKind.RELOADED))

    # -- subscriptions -------------------------------------------------------

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            listener(change)

    def _persist(self, write: Callable[[LocalCache], None]) -> None:
        if self._cache is None or not self._started:
            return
        try:
            write(self._cache)
        except SQLAlchemyError as exc:
            logger.error(f"Error writing local cache: {exc}")
