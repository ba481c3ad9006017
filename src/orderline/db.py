"""
Database helpers for the local order cache.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, delete, event, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from orderline.datetime_utils import now_ms
from orderline.models import Base, CachedOrder

logger = logging.getLogger(__name__)


class LocalCache:
    """
    Best-effort persistence of a terminal's order collection.

    Each instance owns its engine; nothing is shared at module level, so a
    process can host several terminals (or tests) side by side.
    """

    def __init__(self, database_url: str):
        engine_kwargs: dict[str, Any] = {"future": True, "pool_pre_ping": True}

        if database_url.startswith("sqlite"):
            engine_kwargs.update(
                {
                    "connect_args": {"check_same_thread": False},
                    "poolclass": StaticPool,
                    "pool_pre_ping": False,
                }
            )

        self.database_url = database_url
        self._engine = create_engine(database_url, **engine_kwargs)

        @event.listens_for(self._engine, "before_cursor_execute")
        def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            conn.info.setdefault("query_start_time", []).append(time.time())

        @event.listens_for(self._engine, "after_cursor_execute")
        def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            total = time.time() - conn.info["query_start_time"].pop(-1)
            if total > 1.0:
                logger.warning(f"Slow cache query ({total:.2f}s): {statement[:200]}...")

        self._session_factory = sessionmaker(
            bind=self._engine, autoflush=False, autocommit=False, expire_on_commit=False
        )

    def init_schema(self) -> None:
        Base.metadata.create_all(self._engine)

    def dispose(self) -> None:
        self._engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Provide a transactional scope around a series of operations.

        Commits on success and rolls back when an exception occurs.
        """
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def load(self) -> list[tuple[dict[str, Any], bool]]:
        """Return every cached payload with its synced flag, oldest order first."""
        with self.session() as session:
            rows = (
                session.execute(select(CachedOrder).order_by(CachedOrder.created_at))
                .scalars()
                .all()
            )
            return [(json.loads(row.payload), row.synced) for row in rows]

    def save(self, payload: dict[str, Any], synced: bool) -> None:
        with self.session() as session:
            self._upsert(session, payload, synced)

    def delete(self, order_id: str) -> None:
        with self.session() as session:
            session.execute(delete(CachedOrder).where(CachedOrder.id == order_id))

    def replace_all(self, entries: Iterable[tuple[dict[str, Any], bool]]) -> None:
        with self.session() as session:
            session.execute(delete(CachedOrder))
            for payload, synced in entries:
                self._upsert(session, payload, synced)

    @staticmethod
    def _upsert(session: Session, payload: dict[str, Any], synced: bool) -> None:
        row = session.get(CachedOrder, payload["id"])
        if row is None:
            row = CachedOrder(id=payload["id"], created_at=payload.get("createdAt", 0))
            session.add(row)
        row.payload = json.dumps(payload)
        row.synced = synced
        row.last_modified = now_ms()
