"""
Redis pub/sub transport for the push channel.

The backing store publishes JSON messages shaped `{"type", "payload",
"timestamp"}` on the events channel; each one is handed to the in-process
`EventChannel`. Messages published while the listener is disconnected are lost
and repaired by the next refetch.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

from redis import Redis
from redis.exceptions import RedisError

from orderline.realtime.channel import EventChannel

logger = logging.getLogger(__name__)


class RedisEventListener:
    def __init__(
        self,
        channel: EventChannel,
        redis_url: str,
        events_channel: str,
        client: Redis | None = None,
        reconnect_seconds: float = 5.0,
    ):
        self.channel = channel
        self.events_channel = events_channel
        self.reconnect_seconds = reconnect_seconds
        self._client = client or Redis.from_url(redis_url, decode_responses=True)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="orderline-redis-listener", daemon=True
        )
        self._thread.start()
        logger.info(f"Listening for order events on '{self.events_channel}'")

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            pubsub = self._client.pubsub(ignore_subscribe_messages=True)
            try:
                pubsub.subscribe(self.events_channel)
                while not self._stop.is_set():
                    message = pubsub.get_message(timeout=1.0)
                    if message is not None:
                        self.handle_message(message)
            except RedisError as exc:
                logger.warning(f"Redis event subscription lost: {exc}")
                self._stop.wait(self.reconnect_seconds)
            finally:
                pubsub.close()

    def handle_message(self, message: dict[str, Any]) -> bool:
        """Decode one pub/sub message and publish it; returns False if it was dropped."""
        if message.get("type") != "message":
            return False
        try:
            decoded = json.loads(message["data"])
            event_type = decoded["type"]
            payload = decoded.get("payload")
        except (TypeError, ValueError, KeyError) as exc:
            logger.warning(f"Dropping undecodable event message: {exc}")
            return False
        try:
            self.channel.publish(event_type, payload)
        except Exception as exc:
            # The listener thread outlives any one handler; the next refetch repairs the store.
            logger.error(f"Handler failed for '{event_type}' event: {exc}", exc_info=True)
            return False
        return True
