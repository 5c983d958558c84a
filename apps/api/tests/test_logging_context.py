from __future__ import annotations

import json
import logging
from collections.abc import Generator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.context import reset_actor_name, reset_correlation_id, set_actor_name, set_correlation_id
from app.core.config import get_settings
from app.core.database import Base, get_db
from app.logging import CorrelationIdFilter, JsonLogFormatter
from app.main import app


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


@pytest.fixture(autouse=True)
def setup_env() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_logs_include_correlation_id_for_http(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.get("/agent/entries/77", headers={"X-Correlation-Id": "abc-123"})
    assert response.status_code == 404

    records = [record for record in caplog.records if record.name == "app.request" and record.getMessage() == "http.request"]
    assert records
    assert any(
        getattr(record, "correlation_id", None) == "abc-123"
        and getattr(record, "method", None) == "GET"
        and getattr(record, "path", None) == "/agent/entries/{id}"
        and getattr(record, "status_code", None) == 404
        and isinstance(getattr(record, "duration_ms", None), float)
        for record in records
    )


def test_ledger_mutation_logs_carry_account_context(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.post("/agent", json={"agent_name": "Ali", "credit": 250})
    assert response.status_code == 201
    entry_id = response.json()["data"]["id"]

    ledger_records = [record for record in caplog.records if record.name == "app.ledger"]
    assert any(
        record.getMessage() == "ledger.entry.created"
        and getattr(record, "ledger", None) == "agent"
        and getattr(record, "account_key", None) == "Ali"
        and getattr(record, "entry_id", None) == entry_id
        for record in ledger_records
    )

    recompute_records = [record for record in caplog.records if record.name == "app.ledger.recompute"]
    assert any(
        record.getMessage() == "ledger.recompute.completed"
        and Decimal(getattr(record, "final_balance", "0")) == Decimal("250")
        for record in recompute_records
    )


def test_validation_failures_are_logged_as_warnings(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)

    response = client.post("/agent", json={"agent_name": "Ali", "credit": 5, "debit": 5})
    assert response.status_code == 400

    failures = [record for record in caplog.records if record.getMessage() == "ledger.create.failed"]
    assert failures
    assert failures[-1].levelno == logging.WARNING
    assert getattr(failures[-1], "status", None) == 400


def test_json_formatter_includes_context_and_known_fields() -> None:
    correlation_token = set_correlation_id("fmt-1")
    actor_token = set_actor_name("auditor")
    try:
        record = logging.makeLogRecord(
            {
                "name": "app.ledger",
                "levelno": logging.INFO,
                "levelname": "INFO",
                "msg": "ledger.entry.created",
                "ledger": "office",
                "account_key": "BankA",
                "unrelated": "dropped",
            }
        )
        CorrelationIdFilter().filter(record)
        payload = json.loads(JsonLogFormatter().format(record))
    finally:
        reset_actor_name(actor_token)
        reset_correlation_id(correlation_token)

    assert payload["msg"] == "ledger.entry.created"
    assert payload["correlation_id"] == "fmt-1"
    assert payload["actor"] == "auditor"
    assert payload["fields"] == {"ledger": "office", "account_key": "BankA"}
