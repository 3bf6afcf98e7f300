"""Shared pytest fixtures: a settable clock, in-memory stores and an API client."""

import os
from datetime import datetime, timedelta, timezone

# Must be set before config is imported anywhere
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient

from stores.memory import InMemoryHabitStore, InMemoryUserStore


class FrozenClock:
    """Callable clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def habit_store():
    return InMemoryHabitStore()


@pytest.fixture
def user_store():
    return InMemoryUserStore()


@pytest.fixture
def app(habit_store, user_store, clock):
    from main import create_app

    return create_app(habit_store=habit_store, user_store=user_store, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_client(client):
    """A client holding the session cookie of a freshly registered user."""
    resp = client.post(
        "/api/v1/auth/register",
        json={"email": "ada@example.com", "password": "correct-horse", "name": "Ada"},
    )
    assert resp.status_code == 201
    client.user_id = resp.json()["data"]["user"]["userId"]
    return client
