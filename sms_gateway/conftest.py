"""
Pytest configuration and shared fixtures.

The test environment is set here before any app import so settings are
built from it rather than from a developer's .env.
"""

import os

os.environ["DATABASE_URL"] = "sqlite:///./test_sms_store.db"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["GRANTED_PERMISSIONS"] = ""
os.environ["INTERACTIVE_CONTEXT"] = "false"
os.environ["INIT_SCHEMA"] = "false"

import pytest
from fastapi.testclient import TestClient

# Clear settings cache before any app imports to ensure test env vars are used
from sms_gateway.config import get_settings
get_settings.cache_clear()

from sms_gateway.main import app
from sms_gateway.models import Sms, Conversation
from sms_gateway.permissions import READ_SMS, HostPermissionProvider
from sms_gateway.storage import SessionLocal, Base, engine


# Thread layout used by seeded fixtures:
#   thread 1 (+1234567890): sms 1 @1000, sms 2 @3000 -> conversation 10 @3000
#   thread 2 (+0987654321): sms 3 @2000, sms 4 @5000 -> conversation 11 @5000
#   thread 3 (+1111111111): sms 5 @4000             -> conversation 12 @4000
#   thread 4 (no messages)                          -> conversation 13 @500
SEED_SMS = [
    dict(id=1, thread_id=1, address="+1234567890", body="Hi there", date=1000, date_sent=990, type=1, read=1),
    dict(id=2, thread_id=1, address="+1234567890", body="Reply from me", date=3000, date_sent=2990, type=2, read=1),
    dict(id=3, thread_id=2, address="+0987654321", body="Hello", date=2000, date_sent=1990, type=1, read=1),
    dict(id=4, thread_id=2, address="+0987654321", body="Latest in two", date=5000, date_sent=4990, type=1, read=0),
    dict(id=5, thread_id=3, address="+1111111111", body="Only one", date=4000, date_sent=3990, type=1, read=0),
]

SEED_CONVERSATIONS = [
    dict(id=10, thread_id=1, date=3000, snippet="stale snippet"),
    dict(id=11, thread_id=2, date=5000, snippet="stale snippet"),
    dict(id=12, thread_id=3, date=4000, snippet=None),
    dict(id=13, thread_id=4, date=500, snippet="ghost"),
]


@pytest.fixture(autouse=True)
def host_permissions() -> HostPermissionProvider:
    """Fresh host permission state (nothing granted, no context) per test."""
    provider = HostPermissionProvider()
    gate = app.state.permission_gate
    gate.provider = provider
    gate.detach_context()
    app.state.permissions = provider
    return provider


@pytest.fixture
def grant(host_permissions):
    """Grant READ_SMS for the duration of the test."""
    host_permissions.grant(READ_SMS)
    return host_permissions


@pytest.fixture
def revoke(host_permissions):
    """Withdraw READ_SMS mid-test, as the user would from system settings."""

    def _revoke():
        host_permissions.revoke(READ_SMS)

    return _revoke


@pytest.fixture
def seed_store():
    """Insert rows directly into the store, acting as the host OS."""

    def _seed(sms=(), conversations=()):
        with SessionLocal() as db:
            db.add_all(Sms(**row) for row in sms)
            db.add_all(Conversation(**row) for row in conversations)
            db.commit()

    return _seed


@pytest.fixture(scope="function")
def client():
    """Create test client with a fresh, empty store for each test."""
    Base.metadata.create_all(bind=engine)

    with TestClient(app) as test_client:
        yield test_client

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded_client(client, seed_store):
    """Client over a store holding the standard thread layout."""
    seed_store(sms=SEED_SMS, conversations=SEED_CONVERSATIONS)
    return client
