from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.metrics import observe_ledger_recompute
from app.otel import ledger_span
from app.platform.ledger.models import LedgerEntryMixin, LedgerKind
from app.platform.results import StorageError


logger = logging.getLogger("app.ledger.recompute")

ZERO = Decimal("0")


def as_amount(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)) if not isinstance(value, Decimal) else value


@dataclass(frozen=True, slots=True)
class ReplayRow:
    credit: Decimal | None
    debit: Decimal | None
    is_opening_balance: bool = False
    balance: Decimal | None = None


@dataclass(frozen=True, slots=True)
class RecomputeSummary:
    ledger: str
    account_key: str
    row_count: int
    rows_changed: int
    final_balance: Decimal

    def as_dict(self) -> dict[str, object]:
        return {
            "ledger": self.ledger,
            "account_key": self.account_key,
            "row_count": self.row_count,
            "rows_changed": self.rows_changed,
            "final_balance": str(self.final_balance),
        }


def replay_balances(rows: Iterable[ReplayRow]) -> list[Decimal]:
    """Running balances for rows already sorted by id.

    An opening-balance row resets the running total to its stored balance;
    every other row adds ``credit - debit`` with missing amounts read as zero.
    """
    running = ZERO
    balances: list[Decimal] = []
    for row in rows:
        if row.is_opening_balance:
            running = as_amount(row.balance)
        else:
            running = running + as_amount(row.credit) - as_amount(row.debit)
        balances.append(running)
    return balances


class BalanceRecomputationEngine:
    """Re-derives every stored balance of one account by full replay in id order."""

    def load_chain(self, session: Session, kind: LedgerKind, account_key: str) -> Sequence[LedgerEntryMixin]:
        model = kind.model
        stmt = select(model).where(model.account_key == account_key).order_by(model.id.asc())
        return session.scalars(stmt).all()

    def recompute(self, session: Session, kind: LedgerKind, account_key: str) -> RecomputeSummary:
        started = time.perf_counter()
        with ledger_span("ledger.recompute", ledger=kind.name, account_key=account_key) as span:
            try:
                rows = self.load_chain(session, kind, account_key)
                balances = replay_balances(
                    ReplayRow(
                        credit=row.credit,
                        debit=row.debit,
                        is_opening_balance=row.is_opening_balance,
                        balance=row.balance,
                    )
                    for row in rows
                )
                changed = 0
                for row, balance in zip(rows, balances):
                    if row.balance is None or as_amount(row.balance) != balance:
                        row.balance = balance
                        changed += 1
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error(
                    "ledger.recompute.failed",
                    extra={"ledger": kind.name, "account_key": account_key, "error": str(exc)},
                )
                raise StorageError.from_exc("balance recomputation failed", exc) from exc

            final_balance = balances[-1] if balances else ZERO
            span.set_attribute("row_count", len(rows))
            span.set_attribute("rows_changed", changed)

        observe_ledger_recompute(kind.name, time.perf_counter() - started)
        logger.info(
            "ledger.recompute.completed",
            extra={
                "ledger": kind.name,
                "account_key": account_key,
                "row_count": len(rows),
                "final_balance": str(final_balance),
            },
        )
        return RecomputeSummary(
            ledger=kind.name,
            account_key=account_key,
            row_count=len(rows),
            rows_changed=changed,
            final_balance=final_balance,
        )


balance_recomputation_engine = BalanceRecomputationEngine()
