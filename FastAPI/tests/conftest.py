import os
from dataclasses import dataclass
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pytest-only")

from app.core.rate_limiter import rate_limiter
from app.core.security import generate_id
from app.database import Base, get_db
from app.dependencies import get_current_user
from app.main import app
from app.models import Job, User
from app.models.user import ROLE_EMPLOYER, ROLE_JOB_SEEKER, normalize_role

_EMAIL_COUNTER = count(1)


@dataclass
class StubUser:
    id: str = "user-1"
    email: str = "user@example.com"
    full_name: str = "Stub User"
    role: str = ROLE_JOB_SEEKER
    is_active: bool = True
    password_hash: str = "hashed-password"

    @property
    def normalized_role(self) -> str:
        return normalize_role(self.role)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def stub_user() -> StubUser:
    return StubUser()


@pytest.fixture
def employer_stub() -> StubUser:
    return StubUser(id="emp-1", email="boss@example.com", full_name="Boss", role=ROLE_EMPLOYER)


@pytest.fixture
def client(stub_user: StubUser):
    def _db_override():
        yield object()

    app.dependency_overrides[get_db] = _db_override
    app.dependency_overrides[get_current_user] = lambda: stub_user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def employer_client(employer_stub: StubUser):
    def _db_override():
        yield object()

    app.dependency_overrides[get_db] = _db_override
    app.dependency_overrides[get_current_user] = lambda: employer_stub
    yield TestClient(app)
    app.dependency_overrides.clear()


# Real database (in-memory SQLite, fresh per test)

@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """Insert a user directly (skips bcrypt so tests stay fast)."""

    def _make(role: str = ROLE_JOB_SEEKER, full_name: str | None = None, user_id: str | None = None) -> User:
        n = next(_EMAIL_COUNTER)
        user = User(
            id=user_id or generate_id(),
            email=f"user{n}@example.com",
            password_hash="not-a-real-hash",
            full_name=full_name or f"User {n}",
            role=role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_job(db):
    def _make(employer: User, title: str = "Barista", status: str = "published", is_active: bool = True) -> Job:
        job = Job(
            id=generate_id(),
            employer_id=employer.id,
            title=title,
            business_name="Corner Cafe",
            status=status,
            is_active=is_active,
        )
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    return _make


@pytest.fixture
def employer(make_user) -> User:
    return make_user(ROLE_EMPLOYER, full_name="Erin Employer")


@pytest.fixture
def seeker(make_user) -> User:
    return make_user(ROLE_JOB_SEEKER, full_name="Sam Seeker")


@pytest.fixture
def job(make_job, employer) -> Job:
    return make_job(employer)


@pytest.fixture
def api_as(db):
    """TestClient backed by the test database; call api_as(user) to act as that user."""

    def _db_override():
        yield db

    app.dependency_overrides[get_db] = _db_override
    test_client = TestClient(app)

    def _as(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return test_client

    yield _as
    app.dependency_overrides.clear()
