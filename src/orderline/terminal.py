"""
One ordering terminal: the order store plus everything that feeds and reads it.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from orderline.config import AppConfig
from orderline.db import LocalCache
from orderline.logging_config import TerminalLogAdapter
from orderline.realtime.channel import EventChannel
from orderline.realtime.reconciler import EventReconciler
from orderline.realtime.redis_listener import RedisEventListener
from orderline.services.business_day_service import BusinessDayBucketer, SalesSummary
from orderline.services.kitchen_queue_service import KitchenQueueEstimator, KitchenStatus, QueueStats
from orderline.services.order_service import DashboardSections, dashboard_sections
from orderline.services.payment_service import PaymentReconciler, PaymentTotals
from orderline.store import OrderStore
from orderline.sync.offline_queue import OfflineSyncQueue
from orderline.sync.refetch import PeriodicRefetcher
from orderline.sync.remote import OrdersApiClient


class Terminal:
    """
    Wires one terminal's components with an explicit lifecycle.

    Remote calls run on a single worker thread so they reach the server in the
    order the mutations were made; callers never wait on them.
    """

    def __init__(
        self,
        config: AppConfig,
        client: OrdersApiClient | None = None,
        cache: LocalCache | None = None,
        listener: RedisEventListener | None = None,
        enable_push: bool = True,
    ):
        self.config = config
        self.logger = TerminalLogAdapter(
            logging.getLogger(__name__), config.terminal_id, config.branch_filter
        )

        self.store = OrderStore(cache if cache is not None else LocalCache(config.cache_url))
        self.channel = EventChannel()
        self.reconciler = EventReconciler(self.store, config.branch_filter)
        self._unbind = self.reconciler.bind(self.channel)

        self.client = client or OrdersApiClient(config.api_url, config.api_timeout)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="orderline-sync")
        self.sync = OfflineSyncQueue(
            self.store,
            self.client,
            retries=config.remote_retries,
            branch=config.branch_filter,
            dispatch=self._executor.submit,
        )
        self.refetcher = PeriodicRefetcher(self.sync.refetch, config.refetch_seconds)

        if listener is None and enable_push:
            listener = RedisEventListener(self.channel, config.redis_url, config.events_channel)
        self.listener = listener

        self.estimator = KitchenQueueEstimator(config.per_order_minutes, config.kitchen_capacity)
        self.bucketer = BusinessDayBucketer(
            config.business_day_start, config.business_day_end, config.timezone
        )
        self.sync.on_notice(
            lambda notice: self.logger.info(f"{notice.title}: {notice.message}")
        )
        self._started = False

    def start(self) -> Terminal:
        if self._started:
            return self
        self.store.start()
        if self.listener is not None:
            self.listener.start()
        self.refetcher.start()
        self._started = True
        self.logger.info(f"Terminal started with {len(self.store)} cached orders")
        return self

    def stop(self) -> None:
        if not self._started:
            return
        self.refetcher.stop()
        if self.listener is not None:
            self.listener.stop()
        self._executor.shutdown(wait=True)
        self._unbind()
        self.store.stop()
        self.client.close()
        self._started = False
        self.logger.info("Terminal stopped")

    def __enter__(self) -> Terminal:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # -- derived views -------------------------------------------------------

    def sections(self, now: datetime | int | None = None) -> DashboardSections:
        return dashboard_sections(self.store.all(), self.bucketer.predicate(now))

    def totals(self, order_id: str) -> PaymentTotals:
        return PaymentReconciler.compute_totals(self.store.require(order_id))

    def kitchen_status(self) -> KitchenStatus:
        return self.estimator.status(self.store.all())

    def queue_stats(self) -> QueueStats:
        return self.estimator.queue_stats(self.store.all())

    def sales_today(self, now: datetime | int | None = None) -> SalesSummary:
        return self.bucketer.sales_summary(self.store.all(), now)
