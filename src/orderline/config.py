"""
Utilities to centralize configuration handling for an ordering terminal.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

from orderline.constants import (
    DEFAULT_BUSINESS_DAY_END,
    DEFAULT_BUSINESS_DAY_START,
    DEFAULT_KITCHEN_CAPACITY,
    DEFAULT_PER_ORDER_MINUTES,
    DEFAULT_REFETCH_SECONDS,
    DEFAULT_TIMEZONE,
)
from orderline.validation import validate_clock_time

TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass
class AppConfig:
    """Simple container for terminal level settings."""

    app_name: str
    terminal_id: str
    # Remote store
    api_url: str
    api_timeout: float
    remote_retries: int
    branch: str
    # Local cache
    cache_url: str
    # Push channel
    redis_url: str
    events_channel: str
    # Sync
    refetch_seconds: float
    # Kitchen queue
    per_order_minutes: int
    kitchen_capacity: int
    # Business day
    business_day_start: str
    business_day_end: str
    timezone: str
    # App settings
    log_level: str
    debug_mode: bool

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Read a flag, accepting the same truthy strings as the environment."""
        value = getattr(self, key, default)
        if isinstance(value, str):
            return value.strip().lower() in TRUTHY
        return bool(value)

    def get_int(self, key: str, default: int = 0) -> int:
        value = getattr(self, key, default)
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                return default
        return value if isinstance(value, int) else default

    @property
    def branch_filter(self) -> str | None:
        """Branch used to scope list calls and push events; None means every branch."""
        return self.branch or None


def _read_env(name: str, default: str | None = None) -> str:
    """
    Internal helper to fetch environment variables with support for defaults.
    """
    value = os.getenv(name)
    if value is None:
        if default is None:
            raise RuntimeError(f"Missing required environment variable '{name}'")
        value = default
    return value


def read_bool(name: str, default: str = "false") -> bool:
    value = _read_env(name, default)
    return value.strip().lower() in TRUTHY


def _slugify(value: str) -> str:
    value = value.strip().lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    return value.strip("-")


def load_config(app_name: str) -> AppConfig:
    """
    Produce an AppConfig instance populated from environment variables.

    Each terminal passes its desired `app_name` so logs from the order-taker,
    crew dashboard and customer kiosk are easy to tell apart.
    """
    business_day_start = _read_env("ORDERLINE_BUSINESS_DAY_START", DEFAULT_BUSINESS_DAY_START)
    business_day_end = _read_env("ORDERLINE_BUSINESS_DAY_END", DEFAULT_BUSINESS_DAY_END)
    validate_clock_time(business_day_start)
    validate_clock_time(business_day_end)

    return AppConfig(
        app_name=app_name,
        terminal_id=_slugify(_read_env("ORDERLINE_TERMINAL_ID", app_name)),
        # Remote store
        api_url=_read_env("ORDERLINE_API_URL", "http://localhost:5000/api").rstrip("/"),
        api_timeout=float(_read_env("ORDERLINE_API_TIMEOUT", "10")),
        remote_retries=int(_read_env("ORDERLINE_REMOTE_RETRIES", "1")),
        branch=_read_env("ORDERLINE_BRANCH", ""),
        # Local cache
        cache_url=_read_env("ORDERLINE_CACHE_URL", "sqlite:///orderline-cache.db"),
        # Push channel
        redis_url=_read_env("REDIS_URL", "redis://localhost:6379/0"),
        events_channel=_read_env("ORDERLINE_EVENTS_CHANNEL", "orderline:events"),
        # Sync
        refetch_seconds=float(
            _read_env("ORDERLINE_REFETCH_SECONDS", str(DEFAULT_REFETCH_SECONDS))
        ),
        # Kitchen queue
        per_order_minutes=int(
            _read_env("ORDERLINE_PER_ORDER_MINUTES", str(DEFAULT_PER_ORDER_MINUTES))
        ),
        kitchen_capacity=int(
            _read_env("ORDERLINE_KITCHEN_CAPACITY", str(DEFAULT_KITCHEN_CAPACITY))
        ),
        # Business day
        business_day_start=business_day_start,
        business_day_end=business_day_end,
        timezone=_read_env("ORDERLINE_TIMEZONE", DEFAULT_TIMEZONE),
        # App settings
        log_level=_read_env("LOG_LEVEL", "INFO"),
        debug_mode=read_bool("DEBUG_MODE", "false"),
    )
