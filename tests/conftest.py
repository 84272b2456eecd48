"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from cashflow_planner.api.dependencies import get_today
from cashflow_planner.api.main import create_app
from cashflow_planner.infrastructure.database.models import Base
from cashflow_planner.infrastructure.database.session import enable_sqlite_savepoints, get_db
from cashflow_planner.domain.models import EntryType, Frequency, RecurringContract


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
enable_sqlite_savepoints(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed "today" so forecast windows are reproducible
TODAY = date(2026, 6, 15)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and a pinned date"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    return TestClient(app)


@pytest.fixture
def monthly_income() -> RecurringContract:
    """Retainer paid on the 20th every month from January 2026"""
    return RecurringContract(
        kind=EntryType.INCOME,
        label="Acme retainer",
        amount_cents=10_000,
        frequency=Frequency.MONTHLY,
        start_date=date(2026, 1, 1),
        reliability="high",
    )


@pytest.fixture
def quarterly_expense() -> RecurringContract:
    """Quarterly insurance premium starting February 2026"""
    return RecurringContract(
        kind=EntryType.EXPENSE,
        label="Insurance",
        amount_cents=30_000,
        frequency=Frequency.QUARTERLY,
        start_date=date(2026, 2, 1),
        priority="essential",
    )
