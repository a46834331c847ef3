"""
Test Configuration and Fixtures
Shared testing infrastructure for GIMS
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_TO_FILE", "false")

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator, Dict
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from gims.main import app
from gims.core.config import settings
from gims.core.database import get_db, Base
from gims.core.security import Permissions, create_access_token
from gims.models import StockItem, RequestRecord, BorrowSource, AppConfig

# Test database URL - using in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite://"

# Create test engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ALL_PERMISSIONS = [value for name, value in vars(Permissions).items() if name.isupper()]


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Keep uploads inside the test's temporary directory"""
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "UPLOAD_DIR", path)
    return path


def make_headers(*permissions: str, username: str = "tester") -> Dict[str, str]:
    token = create_access_token(username, permissions)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    """Headers for a user holding every permission"""
    return make_headers(*ALL_PERMISSIONS, username="admin")


@pytest.fixture
def user_headers() -> Dict[str, str]:
    """Headers for a user without approval permissions"""
    return make_headers(Permissions.RECEIVE_ITEMS, username="storekeeper")


@pytest.fixture
def app_config(db_session: Session):
    db_session.add_all([
        AppConfig(config_type="rrp", config_name="current_fy", config_value="2081/82"),
        AppConfig(config_type="request", config_name="section_code", config_value="GSE"),
    ])
    db_session.commit()


@pytest.fixture
def stock_item(db_session: Session) -> StockItem:
    item = StockItem(
        nac_code="GT04552",
        item_name="Hydraulic Filter",
        part_numbers="HF-100",
        applicable_equipments="101,102",
        current_balance=Decimal("10"),
        unit="EA",
        location="A1",
        card_number="C-12",
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture
def approved_request(db_session: Session) -> RequestRecord:
    record = RequestRecord(
        request_number="GSEY82T1F81RN1",
        request_date=date(2025, 1, 10),
        nac_code="GT04552",
        part_number="HF-100",
        item_name="Hydraulic Filter",
        unit="EA",
        requested_quantity=Decimal("10"),
        current_balance="10",
        previous_rate="N/A",
        equipment_number="101",
        requested_by="requester",
        approval_status="APPROVED",
        is_received=False,
    )
    db_session.add(record)
    db_session.commit()
    return record


@pytest.fixture
def borrow_source(db_session: Session) -> BorrowSource:
    source = BorrowSource(source_name="Nepal Airlines Stores", source_code="NAS", is_active=True)
    db_session.add(source)
    db_session.commit()
    return source


@pytest.fixture
def sample_request_record_data() -> Dict:
    """Request record payload as sent by the records screen"""
    return {
        "requestNumber": "GSEY82T5F81RN5",
        "nacCode": "GT04552",
        "requestDate": "2025-01-15",
        "partNumber": "HF-100",
        "itemName": "Hydraulic Filter",
        "unit": "EA",
        "requestedQuantity": 10,
        "equipmentNumber": "101",
        "requestedBy": "requester",
    }


@pytest.fixture
def headers_for():
    """Build headers for an arbitrary permission set"""
    return make_headers
