import os
import tempfile

# CRITICAL: Set environment variables BEFORE any app imports
# These must be set before app.config.settings is loaded
_TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "test_rice_ledger.db")
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{_TEST_DB_PATH}"
os.environ["ENVIRONMENT"] = "test"
os.environ["API_V1_STR"] = "/api"  # Ensure /api prefix is used in tests

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# Now import app modules - they will use the test DATABASE_URL
from app import models  # noqa: F401  (registers tables)
from app.database import Base, get_db, engine as app_engine
from app.main import app
from app.schemas.loads import LoadCreate
from app.services.record_store import RecordStore
from app.services.settlement_engine import EngineSettings

# Use the same engine that the app uses
TEST_ENGINE = app_engine

TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=TEST_ENGINE, future=True
)


def override_get_db():
    """Test database session that uses the test engine."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function", autouse=True)
def setup_test_database():
    """
    Create all tables before each test and drop them after,
    so every test starts from an empty ledger.
    """
    original_overrides = dict(app.dependency_overrides)

    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)

    yield

    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)

    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def db_session():
    """A session for direct service-level tests. Tests commit explicitly."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def engine_settings() -> EngineSettings:
    """Organisation defaults used throughout the examples."""
    return EngineSettings(
        bag_weight_kg=Decimal("75"),
        case1_deduct_per_bag_kg=Decimal("2"),
        case2_deduct_per_ton_kg=Decimal("5"),
        commission_per_bag=Decimal("10"),
        companion_per_bag_default=Decimal("2"),
        credit_cut_percent=Decimal("1"),
        credit_cut_days=7,
    )


@pytest.fixture
def today() -> date:
    return date(2025, 3, 31)


@pytest.fixture
def parties(db_session):
    """One farmer, one mill (no commission default) and one vehicle."""
    store = RecordStore(db_session, actor="test")
    ids = SimpleNamespace(
        farmer_id=store.add("farmers", {"name": "Ravi Kumar", "village": "Kharkhoda"}),
        mill_id=store.add("mills", {"name": "Shree Rice Mill", "village": "Panipat"}),
        vehicle_id=store.add("vehicles", {"number": "HR38AB1234"}),
    )
    db_session.commit()
    return ids


@pytest.fixture
def make_load(parties):
    """Factory for the farmer-loading example (9000 kg, 120 bags)."""

    def _make(**overrides) -> LoadCreate:
        fields = {
            "load_date": date(2025, 1, 1),
            "farmer_id": parties.farmer_id,
            "mill_id": parties.mill_id,
            "vehicle_id": parties.vehicle_id,
            "case": "CASE1",
            "gross_kg": "9000",
            "declared_bags": 120,
            "buy_rate_per_bag": "2100",
            "sell_rate_per_bag": "2200",
            "commission_policy": "FARMER",
            "expenses": {
                "labour": {"amount": "1800", "payer": "MILL"},
                "weight_fee": {"amount": "200", "payer": "MILL"},
                "vehicle_rent": {"amount": "3000", "payer": "MILL"},
            },
        }
        fields.update(overrides)
        return LoadCreate(**fields)

    return _make
