"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- Database setup/teardown (in-memory SQLite)
- A controllable clock for OTP expiry
- A notifier that records outgoing mail instead of sending it
- FastAPI test client with the DB session and account service overridden
"""

import os
import re
from datetime import datetime, timedelta, timezone

# Settings are read at import time; point them at throwaway values first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-for-testing-only-not-production"
os.environ["PASSWORD_BCRYPT_ROUNDS"] = "4"
os.environ["OTP_BACKEND"] = "memory"
os.environ["MAIL_BACKEND"] = "console"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.dependencies import get_account_service  # noqa: E402
from app.main import app  # noqa: E402
from app.services.account_service import AccountService  # noqa: E402
from app.services.otp_store import OtpStore  # noqa: E402
from app.utils.cache import MemoryStore  # noqa: E402
from app.utils.email import Notifier  # noqa: E402


# Use in-memory SQLite for testing (fast, isolated)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine,
)


class FakeClock:
    """Callable UTC clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier(Notifier):
    """Keeps every message in memory."""

    def __init__(self):
        self.sent: list[dict] = []

    def send(self, to_email: str, subject: str, body: str) -> bool:
        self.sent.append({"to": to_email, "subject": subject, "body": body})
        return True

    def last_code(self) -> int:
        match = re.search(r"\b(\d{6})\b", self.sent[-1]["body"])
        assert match, "no OTP in last message"
        return int(match.group(1))


@pytest.fixture
def db_session():
    """
    Create a fresh database session for each test.
    Tables are dropped after the test completes.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def otp_store(clock):
    return OtpStore(MemoryStore(), expire_minutes=5, clock=clock)


@pytest.fixture
def account_service(otp_store, notifier):
    return AccountService(otp_store, notifier)


@pytest.fixture
def client(db_session, account_service):
    """
    FastAPI test client with overridden database and service dependencies.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_account_service] = lambda: account_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_user_data():
    """Sample registration payload"""
    return {
        "name": "A",
        "email": "a@x.com",
        "password": "password1",
    }
