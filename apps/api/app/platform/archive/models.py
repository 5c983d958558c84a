from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArchivedRecord(Base):
    __tablename__ = "archived_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    module_name: Mapped[str] = mapped_column(String(64), nullable=False)
    original_record_id: Mapped[int] = mapped_column(Integer, nullable=False)
    record_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    deleted_by: Mapped[str] = mapped_column(String(255), nullable=False, default="system", server_default="system")
    deleted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (Index("ix_archived_data_module", "module_name", "deleted_at"),)
