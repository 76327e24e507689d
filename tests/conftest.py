import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Generator

# Override settings for tests before importing app modules
TEST_DATABASE_URL = "sqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["PAYMENT_SERVICE_URL"] = "http://payment-service.test"
os.environ["REGISTRY_SERVICE_URL"] = "http://registry-service.test"
os.environ["SERVICE_PORT"] = "8080"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from auction_service.dependencies import get_access_gate
from auction_service.main import app
from auction_service.models.database import Base, get_db
from auction_service.models.lot import Lot
from auction_service.services.access_gate import AccessDecision
from auction_service.services.lot_store import LotStore

# Create test database engine
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class FakeAccessGate:
    """Stands in for the payment service; records every check."""

    def __init__(self, decision: AccessDecision | None = None) -> None:
        self.decision = decision or AccessDecision(True, 200, "Allowed")
        self.calls: list[tuple[str, str]] = []

    def check(self, token: str, method_name: str) -> AccessDecision:
        self.calls.append((token, method_name))
        return self.decision


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db_session = TestSessionLocal()
    try:
        yield db_session
    finally:
        db_session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def store(db: Session) -> LotStore:
    return LotStore(db, lock_timeout_seconds=1.0)


@pytest.fixture
def access_gate() -> FakeAccessGate:
    return FakeAccessGate()


@pytest.fixture(scope="function")
def client(db: Session, access_gate: FakeAccessGate) -> Generator[TestClient, None, None]:
    """Create a test client with database and access gate overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_access_gate] = lambda: access_gate
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": "Bearer test-token"}


@pytest.fixture
def open_lot(db: Session) -> Lot:
    """A lot whose auction ends tomorrow and has no bids yet."""
    lot = Lot(
        name="Test Lot",
        description="Brass telescope",
        start_price=Decimal("100.00"),
        owner_id="owner-1",
        auction_end_date=datetime.now(timezone.utc) + timedelta(days=1),
    )
    db.add(lot)
    db.commit()
    db.refresh(lot)
    return lot


@pytest.fixture
def closed_lot(db: Session) -> Lot:
    """A lot whose auction ended an hour ago."""
    lot = Lot(
        name="Closed Lot",
        description=None,
        start_price=Decimal("50.00"),
        owner_id=None,
        auction_end_date=datetime.now(timezone.utc) - timedelta(hours=1),
    )
    db.add(lot)
    db.commit()
    db.refresh(lot)
    return lot
