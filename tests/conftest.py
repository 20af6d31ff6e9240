"""
Test configuration and fixtures for LinkSnap.
This centralizes all test setup, making individual tests clean.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from linksnap_app.backend.strategies import SQLAlchemyBackend
from linksnap_app.cache.strategies import InMemoryCache
from linksnap_app.database.connection import Base
from linksnap_app.dependencies import get_backend, get_cache, get_change_feed
from linksnap_app.events.strategies import InMemoryChangeFeed
from linksnap_app.models.url import ShortURL as ShortURLRow
from linksnap_app.schemas.auth import AuthSession
from linksnap_app.services.url_service import URLService

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def backend():
    """
    Local backend on a fresh database for each test.
    This ensures tests are isolated and don't affect each other.
    """
    Base.metadata.create_all(bind=engine)
    try:
        yield SQLAlchemyBackend(session_factory=TestingSessionLocal)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def broken_urls_table(backend):
    """Drop the urls table so every query on it fails"""
    with backend.session_factory() as db:
        ShortURLRow.__table__.drop(bind=db.get_bind())


@pytest.fixture(scope="function")
def cache():
    return InMemoryCache()


@pytest.fixture(scope="function")
def feed():
    return InMemoryChangeFeed()


@pytest.fixture(scope="function")
def url_service(backend, cache, feed):
    return URLService(backend=backend, cache=cache, feed=feed)


def sign_up(backend, email: str, password: str = "correct-horse") -> AuthSession:
    """Register a user on the local backend and return their session"""
    result = asyncio.run(backend.sign_up(email, password))
    return AuthSession(access_token=result.access_token, user=result.user)


@pytest.fixture(scope="function")
def alice(backend) -> AuthSession:
    return sign_up(backend, "alice@example.com")


@pytest.fixture(scope="function")
def bob(backend) -> AuthSession:
    return sign_up(backend, "bob@example.com")


@pytest.fixture(scope="function")
def alice_headers(alice):
    return {"Authorization": f"Bearer {alice.access_token}"}


@pytest.fixture(scope="function")
def client(backend, cache, feed):
    """
    Create a test client with backend, cache and feed dependencies overridden.
    This is the main fixture that tests will use.
    """
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_change_feed] = lambda: feed

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
