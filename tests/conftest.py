import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Generator

# Override settings for tests before importing app modules
TEST_DATABASE_URL = "sqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["PAYPAL_CLIENT_ID"] = "paypal_client_test"
os.environ["PAYPAL_CLIENT_SECRET"] = "paypal_secret_test"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_mock"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_mock"
os.environ["RECHARGE_SERVICE_URL"] = "http://recharge.test"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.main import app
from app.models.database import Base, get_db
from app.models.user import User
from app.schemas.payments import GoldCoinPayload, ProductType
from app.services import order_lifecycle
from app.services.recharge_service import CreditAck, get_crediting_service
from app.services.verification import PaymentVerification

# Create test database engine
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class RecordingCrediting:
    """Crediting service double that records every call."""

    def __init__(self, error: Exception | None = None):
        self.calls = []
        self.error = error

    def credit(self, order_no, payload, amount, confirmation_id):
        self.calls.append((order_no, payload, amount, confirmation_id))
        if self.error is not None:
            raise self.error
        return CreditAck(order_no=order_no, reference=f"rc_{len(self.calls)}")


def make_verifier(verified=True, amount="9.99", error=None, provider_status="COMPLETED"):
    """Verifier stub with the same signature as the gateway verifiers."""
    calls = []

    def verify(confirmation_id, expected_amount, order_no=None):
        calls.append((confirmation_id, expected_amount, order_no))
        return PaymentVerification(
            verified=verified,
            confirmation_id=confirmation_id,
            amount=Decimal(amount) if amount is not None else None,
            error=error,
            provider_status=provider_status,
        )

    verify.calls = calls
    return verify


def make_token(external_id: str, **claims) -> str:
    payload = {
        "sub": external_id,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


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
def crediting() -> RecordingCrediting:
    return RecordingCrediting()


@pytest.fixture(scope="function")
def client(db: Session, crediting: RecordingCrediting) -> Generator[TestClient, None, None]:
    """Create a test client with database and crediting overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_crediting_service] = lambda: crediting
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def test_user(db: Session) -> User:
    """Create a test user."""
    user = User(
        external_id="user-1",
        display_name="Test User",
        avatar="https://cdn.example.com/a/1.png",
        personal_sign="hello",
        region="Berlin",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_user2(db: Session) -> User:
    """Create a second test user."""
    user = User(external_id="user-2", display_name="Test User 2")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth_token(test_user: User) -> str:
    return make_token(test_user.external_id)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Get auth headers with token."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def auth_headers2(test_user2: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(test_user2.external_id)}"}


@pytest.fixture
def gold_coin_order(db: Session, test_user: User):
    """Pending PayPal goldCoin order for 9.99 (500 coins)."""
    return order_lifecycle.create_order(
        db,
        buyer=test_user,
        product_type=ProductType.GOLD_COIN,
        payload=GoldCoinPayload(gold_coin=500, give_gold_coin=0),
        amount=Decimal("9.99"),
        payment_method="paypal",
    )
