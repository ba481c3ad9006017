"""
Timer-driven fallback refetch, independent of the push channel.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class PeriodicRefetcher:
    """Calls `refetch` every `interval` seconds on a daemon thread until stopped."""

    def __init__(self, refetch: Callable[[], bool], interval: float, run_immediately: bool = True):
        if interval <= 0:
            raise ValueError("Refetch interval must be positive")
        self._refetch = refetch
        self.interval = interval
        self.run_immediately = run_immediately
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="orderline-refetch", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def tick(self) -> bool:
        try:
            return self._refetch()
        except Exception as e:
            logger.error(f"Periodic refetch failed: {e}", exc_info=True)
            return False

    def _run(self) -> None:
        if self.run_immediately:
            self.tick()
        while not self._stop.wait(self.interval):
            self.tick()
