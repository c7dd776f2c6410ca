"""
Shared fixtures.

The app is pointed at a single in-memory SQLite database and the background
scheduler is switched off; tables are rebuilt before every test.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient

from taskboard.database import create_tables, drop_tables, get_session
from taskboard.main import app
from taskboard.models import User
from taskboard.routers.auth import get_password_hash

from .helpers import bearer, register_user


@pytest.fixture(autouse=True)
def reset_database():
    drop_tables()
    create_tables()
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db_session():
    with get_session() as session:
        yield session


@pytest.fixture
def auth_headers(client):
    return bearer(register_user(client, "alice", "alice@example.com")["token"])


@pytest.fixture
def other_headers(client):
    return bearer(register_user(client, "bob", "bob@example.com")["token"])


@pytest.fixture
def make_user(db_session):
    """Insert users straight into the database for store-level tests."""

    def _make(username: str = "carol", email: str = "carol@example.com") -> User:
        user = User(username=username, email=email, hashed_password=get_password_hash("secret123"))
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make
