# tests/conftest.py
import os
import tempfile
from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ["SKIP_DB_INIT"] = "1"

from app.db import Base, get_db
from app.enums import AccountStatus, BookingStatus, ResourceStatus, Role
from app.locks import KeyedLocks
from app.main import app
from app.models import Booking, Resource, User
from app.repositories import SqlBookingStore, SqlResourceStore, SqlUserStore
from app.security import JwtIssuer, PasswordHasher
from app.services import AuthenticationGate, BookingEngine, ResourceService

BOOKING_DAY = date(2024, 1, 10)
PASSWORD = "correct-horse"


class FrozenClock:
    def __init__(self, now=None):
        self.current = now or datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)

    def now(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture(scope="function")
def test_db_session():
    # temp DB
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    db_url = f"sqlite:///{tmp.name}"

    # test engine / Session
    engine = create_engine(db_url, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
        os.unlink(tmp.name)


@pytest.fixture
def make_session(test_db_session):
    # extra sessions on the same database, one per simulated worker
    factory = sessionmaker(autocommit=False, autoflush=False, bind=test_db_session.get_bind())
    opened = []

    def _make_session():
        session = factory()
        opened.append(session)
        return session

    yield _make_session
    for session in opened:
        session.close()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture(scope="session")
def hasher():
    return PasswordHasher()


@pytest.fixture(scope="session")
def issuer():
    return JwtIssuer(secret="test-secret-key-with-enough-length-for-hs256", expire_minutes=30)


@pytest.fixture
def user_store(test_db_session):
    return SqlUserStore(test_db_session)


@pytest.fixture
def resource_store(test_db_session):
    return SqlResourceStore(test_db_session)


@pytest.fixture
def booking_store(test_db_session):
    return SqlBookingStore(test_db_session)


@pytest.fixture
def gate(user_store, hasher, issuer, clock):
    return AuthenticationGate(
        user_store, hasher, issuer, clock=clock, max_failed_attempts=3, lock_duration_minutes=1
    )


@pytest.fixture
def engine(user_store, resource_store, booking_store):
    return BookingEngine(user_store, resource_store, booking_store, locks=KeyedLocks())


@pytest.fixture
def resource_service(resource_store):
    return ResourceService(resource_store)


@pytest.fixture
def client(test_db_session, issuer):
    from app.dependencies import get_issuer

    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_issuer] = lambda: issuer

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# Factories
@pytest.fixture
def make_user(test_db_session, hasher):
    def _make_user(email="student@campus.edu", role=Role.STUDENT, name=None, password=PASSWORD):
        u = User(
            name=name or email.split("@")[0],
            email=email,
            password_hash=hasher.hash(password),
            role=role,
            status=AccountStatus.ACTIVE,
            failed_attempts=0,
        )
        test_db_session.add(u)
        test_db_session.commit()
        return u
    return _make_user


@pytest.fixture
def make_resource(test_db_session):
    def _make_resource(name="Computer Lab 1", type="LAB", capacity=40, status=ResourceStatus.AVAILABLE):
        r = Resource(name=name, type=type, capacity=capacity, status=status)
        test_db_session.add(r)
        test_db_session.commit()
        return r
    return _make_resource


@pytest.fixture
def make_booking(test_db_session):
    def _make_booking(user, resource, start, end, status=BookingStatus.APPROVED, day=BOOKING_DAY):
        b = Booking(
            user_id=user.id,
            resource_id=resource.id,
            booking_date=day,
            start_time=start,
            end_time=end,
            status=status,
        )
        test_db_session.add(b)
        test_db_session.commit()
        return b
    return _make_booking


@pytest.fixture
def auth_headers(issuer):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {issuer.issue(user.email, user.role)}"}
    return _auth_headers
