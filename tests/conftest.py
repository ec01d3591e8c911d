# tests/conftest.py
import os
import re

# Settings are read at import time; give them test values before `app` is imported.
os.environ.setdefault("DATABASE_HOSTNAME", "localhost")
os.environ.setdefault("DATABASE_PASSWORD", "test")
os.environ.setdefault("DATABASE_NAME", "quickcourt_test")
os.environ.setdefault("DATABASE_USERNAME", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-jwt-signing-only")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""
os.environ["TWILIO_PHONE_NUMBER"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models import User, UserRole
from app.services.sms_service import SmsDeliveryError, get_sms_client

# Test database setup: one shared in-memory SQLite connection
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_CODE_RE = re.compile(r"code is: (\d{6})")


class FakeSms:
    """Records outgoing messages instead of calling Twilio."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send_sms(self, to: str, body: str) -> None:
        if self.fail:
            raise SmsDeliveryError("provider down")
        self.sent.append((to, body))

    def last_code(self) -> str:
        for _, body in reversed(self.sent):
            match = _CODE_RE.search(body)
            if match:
                return match.group(1)
        raise AssertionError("no OTP has been sent")


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sms():
    return FakeSms()


@pytest.fixture(scope="function")
def client(db_session, sms):
    """Test client wired to the test session and the fake SMS provider."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sms_client] = lambda: sms
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Factory for registered users."""
    def _make_user(phone="+15551234567", **overrides):
        fields = {
            "full_name": "Test Player",
            "email": f"player{phone[-4:]}@example.com",
            "phone": phone,
            "role": UserRole.CUSTOMER,
        }
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user
