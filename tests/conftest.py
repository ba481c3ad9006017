"""Pytest configuration and fixtures."""

import itertools
from typing import Generator
from unittest.mock import MagicMock

import pytest

from orderline.config import AppConfig
from orderline.db import LocalCache
from orderline.permissions import Actor
from orderline.schemas import Order, parse_order
from orderline.store import OrderStore
from orderline.sync.offline_queue import OfflineSyncQueue
from orderline.sync.remote import OrdersApiClient

# Use in-memory SQLite for tests
TEST_CACHE_URL = "sqlite:///:memory:"

# 2026-03-10 10:00 Asia/Manila
BASE_TS = 1773108000000


@pytest.fixture(scope="function")
def cache() -> Generator[LocalCache, None, None]:
    """Create a local cache on an in-memory database."""
    local_cache = LocalCache(TEST_CACHE_URL)
    local_cache.init_schema()
    yield local_cache
    local_cache.dispose()


@pytest.fixture(scope="function")
def store(cache: LocalCache) -> Generator[OrderStore, None, None]:
    """Create a started order store backed by the test cache."""
    order_store = OrderStore(cache)
    order_store.start()
    yield order_store
    order_store.stop()


@pytest.fixture
def crew_a() -> Actor:
    return Actor.from_role("crew", name="Ana", email="ana@example.com")


@pytest.fixture
def crew_b() -> Actor:
    return Actor.from_role("crew", name="Ben", email="ben@example.com")


@pytest.fixture
def order_taker() -> Actor:
    return Actor.from_role("order_taker", name="Olive", email="olive@example.com")


@pytest.fixture
def admin() -> Actor:
    return Actor.from_role("super_admin", name="Sam", email="sam@example.com")


@pytest.fixture
def make_order():
    """Factory for order snapshots; keyword arguments override wire fields."""
    counter = itertools.count(1)

    def _make(items=None, appended=None, **fields) -> Order:
        number = next(counter)
        payload = {
            "id": f"order-{number}",
            "orderNumber": number,
            "customerName": f"Customer {number}",
            "createdAt": BASE_TS,
            "items": items
            if items is not None
            else [{"id": f"item-{number}", "name": "Adobo", "price": 100, "quantity": 1}],
            "appendedOrders": appended or [],
        }
        payload.update(fields)
        return parse_order(payload)

    return _make


@pytest.fixture
def api_client() -> MagicMock:
    """Create a mock remote store client."""
    return MagicMock(spec=OrdersApiClient)


@pytest.fixture
def sync_queue(store: OrderStore, api_client: MagicMock) -> OfflineSyncQueue:
    """Sync queue dispatching inline with a fixed clock."""
    return OfflineSyncQueue(store, api_client, retries=1, clock=lambda: BASE_TS + 60_000)


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        app_name="orderline-test",
        terminal_id="orderline-test",
        api_url="http://remote.test/api",
        api_timeout=1,
        remote_retries=0,
        branch="",
        cache_url=TEST_CACHE_URL,
        redis_url="redis://localhost:6379/0",
        events_channel="orderline:events",
        refetch_seconds=30,
        per_order_minutes=5,
        kitchen_capacity=10,
        business_day_start="08:00",
        business_day_end="01:00",
        timezone="Asia/Manila",
        log_level="DEBUG",
        debug_mode=False,
    )
