from __future__ import annotations

from collections.abc import Generator
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.platform.ledger.models import AGENT_LEDGER, OFFICE_LEDGER, AgentLedgerEntry, OfficeAccountEntry
from app.platform.ledger.recompute import BalanceRecomputationEngine, ReplayRow, replay_balances


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _office_row(account: str, *, credit: str | None = None, debit: str | None = None, balance: str = "0", opening: bool = False) -> OfficeAccountEntry:
    return OfficeAccountEntry(
        account_key=account,
        credit=Decimal(credit) if credit is not None else None,
        debit=Decimal(debit) if debit is not None else None,
        balance=Decimal(balance),
        is_opening_balance=opening,
    )


def _balances(session: Session, account: str) -> list[Decimal]:
    rows = session.scalars(
        select(OfficeAccountEntry).where(OfficeAccountEntry.account_key == account).order_by(OfficeAccountEntry.id)
    ).all()
    return [Decimal(row.balance) for row in rows]


def test_replay_sums_credit_minus_debit_in_order() -> None:
    balances = replay_balances(
        [
            ReplayRow(credit=Decimal("1000"), debit=None),
            ReplayRow(credit=None, debit=Decimal("300")),
            ReplayRow(credit=Decimal("50"), debit=Decimal("0")),
        ]
    )
    assert balances == [Decimal("1000"), Decimal("700"), Decimal("750")]


def test_replay_opening_balance_resets_running_total() -> None:
    balances = replay_balances(
        [
            ReplayRow(credit=Decimal("100"), debit=None),
            ReplayRow(credit=None, debit=None, is_opening_balance=True, balance=Decimal("500")),
            ReplayRow(credit=None, debit=Decimal("20")),
        ]
    )
    assert balances == [Decimal("100"), Decimal("500"), Decimal("480")]


def test_replay_of_empty_chain_is_empty() -> None:
    assert replay_balances([]) == []


def test_recompute_repairs_corrupted_balances(db_session: Session) -> None:
    db_session.add_all(
        [
            _office_row("BankA", credit="1000", balance="1"),
            _office_row("BankA", debit="300", balance="2"),
            _office_row("BankA", credit="200", balance="3"),
        ]
    )
    db_session.commit()

    summary = BalanceRecomputationEngine().recompute(db_session, OFFICE_LEDGER, "BankA")

    assert summary.row_count == 3
    assert summary.rows_changed == 3
    assert summary.final_balance == Decimal("900")
    assert _balances(db_session, "BankA") == [Decimal("1000"), Decimal("700"), Decimal("900")]


def test_recompute_is_idempotent(db_session: Session) -> None:
    db_session.add_all([_office_row("BankA", credit="10"), _office_row("BankA", debit="4")])
    db_session.commit()

    engine = BalanceRecomputationEngine()
    engine.recompute(db_session, OFFICE_LEDGER, "BankA")
    first = _balances(db_session, "BankA")
    second_summary = engine.recompute(db_session, OFFICE_LEDGER, "BankA")

    assert _balances(db_session, "BankA") == first
    assert second_summary.rows_changed == 0


def test_recompute_keeps_opening_balance_and_continues_from_it(db_session: Session) -> None:
    db_session.add_all(
        [
            _office_row("BankA", credit="100", balance="100"),
            _office_row("BankA", balance="500", opening=True),
            _office_row("BankA", debit="50", balance="0"),
        ]
    )
    db_session.commit()

    BalanceRecomputationEngine().recompute(db_session, OFFICE_LEDGER, "BankA")

    assert _balances(db_session, "BankA") == [Decimal("100"), Decimal("500"), Decimal("450")]


def test_recompute_only_touches_the_requested_account(db_session: Session) -> None:
    db_session.add_all(
        [
            _office_row("BankA", credit="10", balance="99"),
            _office_row("BankB", credit="20", balance="77"),
        ]
    )
    db_session.commit()

    BalanceRecomputationEngine().recompute(db_session, OFFICE_LEDGER, "BankA")

    assert _balances(db_session, "BankA") == [Decimal("10")]
    assert _balances(db_session, "BankB") == [Decimal("77")]


def test_recompute_of_unknown_account_is_a_noop(db_session: Session) -> None:
    summary = BalanceRecomputationEngine().recompute(db_session, OFFICE_LEDGER, "Nobody")
    assert summary.row_count == 0
    assert summary.final_balance == Decimal("0")


def test_recompute_is_scoped_to_ledger_kind(db_session: Session) -> None:
    db_session.add(AgentLedgerEntry(account_key="Shared", credit=Decimal("40"), balance=Decimal("0")))
    db_session.add(_office_row("Shared", credit="15", balance="0"))
    db_session.commit()

    BalanceRecomputationEngine().recompute(db_session, AGENT_LEDGER, "Shared")

    agent_row = db_session.scalar(select(AgentLedgerEntry))
    assert agent_row is not None
    assert Decimal(agent_row.balance) == Decimal("40")
    assert _balances(db_session, "Shared") == [Decimal("0")]
