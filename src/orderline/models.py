"""
SQLAlchemy models for the terminal's local order cache.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class CachedOrder(Base):
    """One order snapshot as last seen (or last mutated) by this terminal."""

    __tablename__ = "cached_orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    synced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    last_modified: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
