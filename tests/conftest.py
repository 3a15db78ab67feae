"""
Pytest configuration and fixtures for identity service tests.

Provides fixtures for:
- In-memory credential store and session backend
- Fast bcrypt protector (minimum cost factor)
- Fully wired AuthGateway
- HTTP client against the ASGI app
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from identity_service.config.settings import Settings
from identity_service.core.auth.credentials import BcryptProtector
from identity_service.core.auth.factory import build_strategy_registry
from identity_service.core.gateway import AuthGateway
from identity_service.infrastructure.session import InMemorySessionBackend, SessionManager
from identity_service.infrastructure.store import InMemoryCredentialStore
from identity_service.main import create_app


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the host environment."""
    return Settings(
        _env_file=None,
        store_backend="memory",
        bcrypt_rounds=4,
        session_ttl_seconds=3600,
        google_client_id="google-client",
        google_client_secret="google-secret",
        google_callback_url="http://test/api/v1/auth/google/callback",
        facebook_app_id=None,
        facebook_app_secret=None,
        facebook_callback_url=None,
    )


@pytest.fixture
def protector() -> BcryptProtector:
    """bcrypt with the minimum cost factor to keep tests fast."""
    return BcryptProtector(rounds=4)


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def session_backend() -> InMemorySessionBackend:
    return InMemorySessionBackend()


@pytest.fixture
def sessions(session_backend, store) -> SessionManager:
    return SessionManager(session_backend, store, ttl_seconds=3600)


@pytest.fixture
def gateway(test_settings, store, sessions, protector) -> AuthGateway:
    registry = build_strategy_registry(test_settings, store, protector)
    return AuthGateway(store=store, registry=registry, sessions=sessions, protector=protector)


@pytest_asyncio.fixture
async def client(test_settings, gateway) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to an app that uses the in-memory gateway."""
    app = create_app(test_settings, gateway=gateway)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
