"""
Test configuration and fixtures.
This centralizes all test setup, making individual tests clean.
"""

import os

# Settings are read once, at import of the app; keep tests off Redis
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient

from main import app
from scanlink_app.database.connection import Base, get_session_factory, make_engine, make_session_factory
from scanlink_app.dependencies import get_dispatcher
from scanlink_app.ratelimit import InMemoryCounterStore, RateLimiter
from scanlink_app.scan_processor import RecordingDispatcher

OWNER = "owner-1"
OWNER_HEADERS = {"X-Owner-Id": OWNER}


@pytest.fixture(scope="function")
def engine(tmp_path):
    """
    File-backed SQLite per test.
    A file (not :memory:) so recording threads see the same database.
    """
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def dispatcher():
    dispatcher = RecordingDispatcher(max_workers=2, max_pending=100)
    yield dispatcher
    dispatcher.shutdown(wait=True)


@pytest.fixture(scope="function")
def rate_limiter():
    return RateLimiter(InMemoryCounterStore(), limit=100, window=60)


@pytest.fixture(scope="function")
def client(session_factory, dispatcher, rate_limiter):
    """
    Create a test client wired to the per-test database, recording pool
    and rate limiter.
    This is the main fixture that tests will use.
    """
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    original_limiter = app.state.rate_limiter
    original_proxies = app.state.trusted_proxies
    app.state.rate_limiter = rate_limiter
    # TestClient connects as "testclient"; treat it and the private range as proxies
    app.state.trusted_proxies = ["testclient", "10.0.0.0/8"]

    with TestClient(app) as test_client:
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()
    app.state.rate_limiter = original_limiter
    app.state.trusted_proxies = original_proxies
