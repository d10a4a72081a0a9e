"""Pytest fixtures for testing"""

import jwt
import pytest
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from cashloan_gateway.api.dependencies import get_receipt_client
from cashloan_gateway.api.main import create_app
from cashloan_gateway.config import settings
from cashloan_gateway.domain.models import Frequency, ReceiptRef, RequestContext
from cashloan_gateway.infrastructure.database.models import Base, Organisation
from cashloan_gateway.infrastructure.database.session import create_db_engine, get_db
from cashloan_gateway.services.loans import LoanService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_db_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ORG_ID = "org-123"
OTHER_ORG_ID = "org-999"
ISSUED_AT = datetime(2024, 1, 1, 10, 30, tzinfo=timezone.utc)


class FakeReceiptClient:
    """Stands in for the receipt service; set .error to make issuance fail"""

    def __init__(self):
        self.calls = []
        self.error = None

    async def generate_receipt(self, **kwargs) -> ReceiptRef:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return ReceiptRef(
            storage_path=f"receipts/{kwargs['org_id']}/{kwargs['payment_id']}.pdf",
            signed_url=f"http://receipts.test/{kwargs['payment_id']}.pdf",
            expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session with two tenant organisations"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    db.add_all([
        Organisation(id=ORG_ID, name="PrestaYa Demo", timezone="America/Buenos_Aires"),
        Organisation(id=OTHER_ORG_ID, name="Other Lender"),
    ])
    db.commit()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def receipt_client() -> FakeReceiptClient:
    return FakeReceiptClient()


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(org_id=ORG_ID, user_id="user-456", role="owner", email="owner@example.com")


@pytest.fixture
def other_ctx() -> RequestContext:
    return RequestContext(org_id=OTHER_ORG_ID, user_id="user-789", role="owner")


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Deterministic clock starting at ISSUED_AT, one minute per reading"""
    ticks = {"n": 0}

    def now() -> datetime:
        value = ISSUED_AT + timedelta(minutes=ticks["n"])
        ticks["n"] += 1
        return value

    return now


@pytest.fixture
def loan_service(db: Session, receipt_client: FakeReceiptClient, clock) -> LoanService:
    return LoanService(db, receipt_client, clock=clock)


@pytest.fixture
def loan_terms() -> dict:
    """1000 at 20% over 4 weekly installments"""
    return {
        "borrower_name": "Juan Perez",
        "borrower_phone": "+541100000000",
        "borrower_national_id": "30123456",
        "principal": 1000,
        "interest_rate": 20,
        "number_of_installments": 4,
        "frequency": Frequency.WEEKLY,
    }


@pytest.fixture
def client(db: Session, receipt_client: FakeReceiptClient) -> TestClient:
    """Create FastAPI test client with test database and fake receipt service"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_receipt_client] = lambda: receipt_client
    return TestClient(app)


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Sign a JWT the way the auth provider does"""

    def _make(sub: str = "user-456", **claims) -> str:
        payload = {"sub": sub, "email": f"{sub}@example.com", **claims}
        return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    return _make


@pytest.fixture
def auth_headers(make_token) -> Callable[..., dict]:
    def _headers(role: str = "owner", org_id: str = ORG_ID) -> dict:
        return {"Authorization": f"Bearer {make_token(org_id=org_id, role=role)}"}

    return _headers
