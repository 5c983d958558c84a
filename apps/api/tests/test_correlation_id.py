from __future__ import annotations

from collections.abc import Generator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings
from app.core.database import Base, get_db
from app.main import app
from app.platform.archive.models import ArchivedRecord


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


def test_generated_correlation_id_returned_in_header(client: TestClient) -> None:
    response = client.get("/vendor/entries/1")
    assert response.status_code == 404
    assert response.headers.get("x-correlation-id")


def test_correlation_id_respected_when_provided(client: TestClient) -> None:
    response = client.get("/vendor/entries/1", headers={"X-Correlation-Id": "abc-123"})
    assert response.status_code == 404
    assert response.headers.get("x-correlation-id") == "abc-123"
    assert response.json()["status"] == "error"


def test_archive_records_actor_from_header(client: TestClient, db_session: Session) -> None:
    created = client.post("/vendor", json={"vendor_name": "AirX", "credit": 12})
    assert created.status_code == 201
    assert Decimal(created.json()["data"]["balance"]) == Decimal("12")

    deleted = client.delete(
        f"/vendor/entries/{created.json()['data']['id']}",
        headers={"X-User-Name": "night-shift", "X-Correlation-Id": "corr-del-1"},
    )
    assert deleted.status_code == 200
    assert deleted.headers.get("x-correlation-id") == "corr-del-1"

    record = db_session.scalar(select(ArchivedRecord).where(ArchivedRecord.module_name == "vendor"))
    assert record is not None
    assert record.deleted_by == "night-shift"


def test_archive_actor_defaults_to_system(client: TestClient, db_session: Session) -> None:
    created = client.post("/vendor", json={"vendor_name": "AirX", "debit": 3})
    client.delete(f"/vendor/entries/{created.json()['data']['id']}")

    record = db_session.scalar(select(ArchivedRecord))
    assert record is not None
    assert record.deleted_by == "system"
