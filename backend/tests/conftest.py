"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
Tests run against the in-memory credential store with a low bcrypt cost.
"""

import os

# Must be set before settings are first loaded
os.environ.setdefault("PATHPAL_STORAGE_BACKEND", "memory")
os.environ.setdefault("PATHPAL_BCRYPT_ROUNDS", "4")

from datetime import datetime, timedelta, timezone
from http.cookies import SimpleCookie
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.dependencies import get_auth_service, reset_container
from modules.auth.hashing import PasswordHasher
from modules.auth.repository import InMemoryCredentialRepository
from modules.auth.service import AuthService
from shared.config import Settings, get_settings


SESSION_COOKIE = "pathpal_session"


class FakeClock:
    """Controllable replacement for utc_now()."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset cached settings and the service container around each test."""
    get_settings.cache_clear()
    reset_container()
    yield
    reset_container()
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: memory store, cheap bcrypt."""
    return Settings(storage_backend="memory", bcrypt_rounds=4)


@pytest.fixture
def store() -> InMemoryCredentialRepository:
    return InMemoryCredentialRepository()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth_service(store, hasher, settings, clock) -> AuthService:
    """Auth service wired to the in-memory store and the fake clock."""
    return AuthService(store, hasher=hasher, settings=settings, clock=clock)


@pytest.fixture
def app(auth_service):
    """Create a fresh app for each test, using the test auth service."""
    application = create_app()
    application.dependency_overrides[get_auth_service] = lambda: auth_service
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def alice() -> dict:
    """Registration body for the reference user."""
    return {
        "email": "alice@example.com",
        "password": "pw123",
        "name": "Alice",
        "role": "CaneUser",
        "birth_date": "1950-04-12",
        "home_long": 8.5417,
        "home_lat": 47.3769,
    }


def parse_set_cookie(response, name: str = SESSION_COOKIE) -> Optional[SimpleCookie]:
    """Return the parsed Set-Cookie header for `name`, or None."""
    for header in response.headers.get_list("set-cookie"):
        cookie = SimpleCookie()
        cookie.load(header)
        if name in cookie:
            return cookie
    return None


@pytest.fixture
def session_cookie() -> Callable:
    """Helper: extract the session token a response sets."""

    def _extract(response) -> Optional[str]:
        cookie = parse_set_cookie(response)
        return cookie[SESSION_COOKIE].value if cookie else None

    return _extract


@pytest.fixture
def cookie_headers() -> Callable:
    """
    Helper: build a Cookie header carrying a session token.

    The session cookie is Secure, so the test client's jar will not send
    it over http://testserver on its own.
    """

    def _headers(token: str) -> dict[str, str]:
        return {"Cookie": f"{SESSION_COOKIE}={token}"}

    return _headers


@pytest.fixture
def logged_in(client, alice, session_cookie, cookie_headers) -> dict[str, str]:
    """Register and log in alice; return request headers with her cookie."""
    assert client.post("/register", json=alice).status_code == 201
    response = client.post("/login", json={"email": alice["email"], "password": alice["password"]})
    assert response.status_code == 200
    return cookie_headers(session_cookie(response))


@pytest.fixture
def set_cookie_of() -> Callable:
    """Helper: parse the session Set-Cookie header of a response."""
    return parse_set_cookie
