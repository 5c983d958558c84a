from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


GLOBAL_COUNTER_ID = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntryCounter(Base):
    __tablename__ = "entry_counters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    form_type: Mapped[str] = mapped_column(String(64), nullable=False)
    current_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (UniqueConstraint("form_type", name="uq_entry_counters_form_type"),)


class GlobalEntryCounter(Base):
    """Single authoritative row holding the cross-module sequence."""

    __tablename__ = "entry_global_counter"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=GLOBAL_COUNTER_ID)
    global_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
