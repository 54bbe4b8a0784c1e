"""Pytest fixtures for the service desk tests.

Uses a throwaway SQLite database and FastAPI TestClient. Overrides the
`get_db` and `get_storage` dependencies so tests are isolated from any real
DB file or attachment directory.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import servicedesk.database as database
from servicedesk.auth import get_password_hash
from servicedesk.main import app
from servicedesk.models import Base, TicketModel, UserModel
from servicedesk.storage import AttachmentStorage, get_storage


TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///./test_servicedesk.db")

engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

# Hashing is slow with argon2; every test user shares one password
DEFAULT_PASSWORD = "secret123"
_DEFAULT_HASH = get_password_hash(DEFAULT_PASSWORD)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and drop them after to ensure isolation."""
    Base.metadata.create_all(bind=engine)
    try:
        yield
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session():
    """Provide a SQLAlchemy session for direct DB access in tests."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def _override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[database.get_db] = _override_get_db

# Many logins happen across tests; keep the limiter out of the way here only
app.state.limiter.enabled = False


@pytest.fixture(autouse=True)
def storage(tmp_path):
    """Attachment storage rooted in a per-test temporary directory."""
    store = AttachmentStorage(str(tmp_path / "storage"))
    app.dependency_overrides[get_storage] = lambda: store
    try:
        yield store
    finally:
        app.dependency_overrides.pop(get_storage, None)


@pytest.fixture()
def client():
    """FastAPI test client using the app with overridden dependencies."""
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def create_user(db_session):
    counter = {"n": 0}

    def _create_user(role: str = "employee", email: str | None = None, name: str | None = None, department: str | None = "General", password: str | None = None):
        counter["n"] += 1
        email = email or f"{role}{counter['n']}@example.com"
        user = UserModel(
            name=name or f"{role} {counter['n']}",
            email=email,
            hashed_password=get_password_hash(password) if password else _DEFAULT_HASH,
            role=role,
            department=department,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture()
def login(client):
    """Return a helper that logs a user in and returns auth headers."""
    def _login(user, password: str = DEFAULT_PASSWORD):
        resp = client.post("/api/auth/login", json={"email": user.email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _login


@pytest.fixture()
def auth_headers(create_user, login):
    """Create a user with the given role and return (headers, user)."""
    def _auth_headers(role: str = "employee", **kwargs):
        user = create_user(role=role, **kwargs)
        return login(user), user

    return _auth_headers


@pytest.fixture()
def make_ticket(db_session):
    """Insert a ticket directly; each call is one minute newer than the previous one."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make_ticket(creator, assignee=None, status: str = "pending", priority: str = "Rendah", title: str | None = None, department: str = "IT"):
        counter["n"] += 1
        created = base + timedelta(minutes=counter["n"])
        ticket = TicketModel(
            title=title or f"Ticket {counter['n']}",
            description="Something is broken",
            priority=priority,
            status=status,
            department=department,
            created_by=creator.id,
            assigned_to=assignee.id if assignee else None,
            created_at=created,
            updated_at=created,
        )
        db_session.add(ticket)
        db_session.commit()
        db_session.refresh(ticket)
        return ticket

    return _make_ticket
