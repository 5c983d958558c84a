from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.database import Base
from app.platform.counters.labels import parse_entry_number
from app.platform.counters.models import GLOBAL_COUNTER_ID, EntryCounter, GlobalEntryCounter
from app.platform.counters.service import EntryCounterService


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


@pytest.fixture()
def counters() -> EntryCounterService:
    return EntryCounterService(
        settings=Settings(
            entry_counter_main_form_types=["ticket", "visa", "agent"],
            entry_counter_utility_form_types=["expense", "refunded"],
        )
    )


def _global_count(session: Session) -> int:
    row = session.get(GlobalEntryCounter, GLOBAL_COUNTER_ID)
    return row.global_count if row is not None else 0


def _current(session: Session, form_type: str) -> int | None:
    row = session.scalar(select(EntryCounter).where(EntryCounter.form_type == form_type))
    return row.current_count if row is not None else None


@pytest.mark.parametrize(
    ("label", "expected"),
    [("12/50", 12), (" 3 / 7 ", 3), ("0/1", 0), ("12", None), ("a/b", None), ("1/2/3", None), ("", None), (None, None)],
)
def test_parse_entry_number(label: str | None, expected: int | None) -> None:
    assert parse_entry_number(label) == expected


def test_ensure_initialized_creates_missing_rows_once(db_session: Session, counters: EntryCounterService) -> None:
    first = counters.ensure_initialized(db_session)
    assert first.ok
    assert first.data["created"] == ["agent", "expense", "refunded", "ticket", "visa"]
    assert _global_count(db_session) == 0

    second = counters.ensure_initialized(db_session)
    assert second.data["created"] == []
    assert len(db_session.scalars(select(EntryCounter)).all()) == 5


def test_increment_main_type_advances_global(db_session: Session, counters: EntryCounterService) -> None:
    counters.ensure_initialized(db_session)

    result = counters.increment(db_session, "ticket", 1)

    assert result.ok
    assert result.message == "Entry counts updated successfully"
    assert result.data["current_count"] == 1
    assert result.data["global_incremented"] is True
    assert _global_count(db_session) == 1


def test_increment_same_number_does_not_advance_global(db_session: Session, counters: EntryCounterService) -> None:
    counters.increment(db_session, "ticket", 4)
    result = counters.increment(db_session, "ticket", 4)

    assert result.data["global_incremented"] is False
    assert _global_count(db_session) == 1


def test_increment_smaller_number_rewinds_current_count(db_session: Session, counters: EntryCounterService) -> None:
    counters.increment(db_session, "visa", 9)
    result = counters.increment(db_session, "visa", 2)

    assert result.data["previous_count"] == 9
    assert _current(db_session, "visa") == 2
    assert _global_count(db_session) == 1

    counters.increment(db_session, "visa", 3)
    assert _global_count(db_session) == 2


def test_utility_type_never_advances_global(db_session: Session, counters: EntryCounterService) -> None:
    counters.increment(db_session, "expense", 10)
    counters.increment(db_session, "expense", 11)

    assert _current(db_session, "expense") == 11
    assert _global_count(db_session) == 0


def test_unknown_form_type_is_created_on_first_increment(db_session: Session, counters: EntryCounterService) -> None:
    result = counters.increment(db_session, "hotel", 5)

    assert result.ok
    assert _current(db_session, "hotel") == 5
    assert _global_count(db_session) == 0


def test_global_count_is_shared_across_main_types(db_session: Session, counters: EntryCounterService) -> None:
    counters.increment(db_session, "ticket", 1)
    counters.increment(db_session, "visa", 1)
    counters.increment(db_session, "agent", 1)

    assert _global_count(db_session) == 3
    assert len(db_session.scalars(select(GlobalEntryCounter)).all()) == 1


def test_increment_validates_input(db_session: Session, counters: EntryCounterService) -> None:
    assert counters.increment(db_session, "", 1).code == 400
    assert counters.increment(db_session, "ticket", -1).code == 400
    assert _global_count(db_session) == 0


def test_get_entry_counts_lists_rows_with_global(db_session: Session, counters: EntryCounterService) -> None:
    counters.ensure_initialized(db_session)
    counters.increment(db_session, "ticket", 7)

    result = counters.get_entry_counts(db_session)

    assert result.ok
    by_type = {item["form_type"]: item for item in result.data}
    assert by_type["ticket"]["current_count"] == 7
    assert by_type["ticket"]["is_main"] is True
    assert by_type["expense"]["is_main"] is False
    assert all(item["global_count"] == 1 for item in result.data)
