from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import CheckConstraint, Date, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ledger_table_args(table: str, account_column: str) -> tuple[Any, ...]:
    return (
        Index(f"ix_{table}_account_id", account_column, "id"),
        CheckConstraint("credit IS NULL OR credit >= 0", name=f"ck_{table}_credit_nonnegative"),
        CheckConstraint("debit IS NULL OR debit >= 0", name=f"ck_{table}_debit_nonnegative"),
        CheckConstraint(
            "NOT (COALESCE(credit, 0) > 0 AND COALESCE(debit, 0) > 0)",
            name=f"ck_{table}_single_sided",
        ),
    )


class LedgerEntryMixin:
    """Columns shared by every running-balance ledger table.

    ``id`` is the only ordering key for balances. ``entry_date`` is descriptive and
    never reorders the chain.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entry_date: Mapped[date | None] = mapped_column("date", Date(), nullable=True)
    employee: Mapped[str | None] = mapped_column(String(255), nullable=True)
    entry: Mapped[str | None] = mapped_column(String(64), nullable=True)
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    credit: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    debit: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    balance: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0"), server_default="0")
    is_opening_balance: Mapped[bool] = mapped_column(nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def snapshot(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "account_key": self.account_key,
            "date": self.entry_date.isoformat() if self.entry_date else None,
            "employee": self.employee,
            "entry": self.entry,
            "detail": self.detail,
            "credit": str(self.credit) if self.credit is not None else None,
            "debit": str(self.debit) if self.debit is not None else None,
            "balance": str(self.balance),
            "is_opening_balance": self.is_opening_balance,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class AgentLedgerEntry(LedgerEntryMixin, Base):
    __tablename__ = "agent"

    account_key: Mapped[str] = mapped_column("agent_name", String(255), nullable=False)

    __table_args__ = _ledger_table_args("agent", "agent_name")


class VendorLedgerEntry(LedgerEntryMixin, Base):
    __tablename__ = "vendor"

    account_key: Mapped[str] = mapped_column("vendor_name", String(255), nullable=False)

    __table_args__ = _ledger_table_args("vendor", "vendor_name")


class OfficeAccountEntry(LedgerEntryMixin, Base):
    __tablename__ = "office_accounts"

    account_key: Mapped[str] = mapped_column("bank_name", String(255), nullable=False)

    __table_args__ = _ledger_table_args("office_accounts", "bank_name")


LedgerModel = type[AgentLedgerEntry] | type[VendorLedgerEntry] | type[OfficeAccountEntry]


@dataclass(frozen=True, slots=True)
class LedgerKind:
    name: str
    model: LedgerModel
    form_type: str
    label: str

    @property
    def archive_module(self) -> str:
        return self.model.__tablename__


AGENT_LEDGER = LedgerKind(name="agent", model=AgentLedgerEntry, form_type="agent", label="Agent")
VENDOR_LEDGER = LedgerKind(name="vendor", model=VendorLedgerEntry, form_type="vendor", label="Vendor")
OFFICE_LEDGER = LedgerKind(name="office", model=OfficeAccountEntry, form_type="account", label="Office account")

LEDGER_KINDS: dict[str, LedgerKind] = {kind.name: kind for kind in (AGENT_LEDGER, VENDOR_LEDGER, OFFICE_LEDGER)}


def kind_for_archive_module(module_name: str) -> LedgerKind | None:
    for kind in LEDGER_KINDS.values():
        if kind.archive_module == module_name:
            return kind
    return None
