import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import datetime, timedelta
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from healwise.main import app
from healwise.api.deps import get_clock
from healwise.infrastructure.database import get_db, Base
from healwise.core.security import create_access_token
from healwise.domain.appointments.service import AppointmentService
from healwise.domain.users.models import User, UserRole
from healwise.domain.users.repository import UserRepository


# Monday morning, well before the working window opens
FIXED_NOW = datetime(2030, 1, 14, 8, 0)


class FrozenClock:
    """Deterministic clock that tests can move forward"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh in-memory database session for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestSessionLocal = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )

    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def clock() -> FrozenClock:
    return FrozenClock(FIXED_NOW)


@pytest.fixture(scope="function")
def tomorrow(clock: FrozenClock) -> datetime:
    """Midnight of the day after the frozen clock"""
    return datetime.combine(clock.now.date() + timedelta(days=1), datetime.min.time())


@pytest.fixture(scope="function")
def service(db_session: Session, clock: FrozenClock) -> AppointmentService:
    return AppointmentService(db_session, clock=clock)


def _create_user(db_session: Session, name: str, email: str, role: UserRole) -> User:
    return UserRepository(db_session).create({"name": name, "email": email, "role": role})


@pytest.fixture(scope="function")
def patient(db_session: Session) -> User:
    return _create_user(db_session, "Priya Patel", "priya@example.com", UserRole.PATIENT)


@pytest.fixture(scope="function")
def other_patient(db_session: Session) -> User:
    return _create_user(db_session, "Omar Haddad", "omar@example.com", UserRole.PATIENT)


@pytest.fixture(scope="function")
def doctor(db_session: Session) -> User:
    return _create_user(db_session, "Dr. Ana Silva", "ana.silva@example.com", UserRole.DOCTOR)


@pytest.fixture(scope="function")
def other_doctor(db_session: Session) -> User:
    return _create_user(db_session, "Dr. Ken Mori", "ken.mori@example.com", UserRole.DOCTOR)


@pytest.fixture(scope="function")
def admin(db_session: Session) -> User:
    return _create_user(db_session, "Site Admin", "admin@example.com", UserRole.ADMIN)


def _bearer_headers(user: User) -> dict:
    token = create_access_token(str(user.id), {"role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_headers():
    """Build bearer headers for a user carrying their role claim"""
    return _bearer_headers


@pytest.fixture(scope="function")
def client(db_session: Session, clock: FrozenClock) -> Generator[TestClient, None, None]:
    """Create a test client with database and clock dependency overrides."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    yield TestClient(app)

    app.dependency_overrides.clear()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "appointments: mark test as appointment scheduling related"
    )
