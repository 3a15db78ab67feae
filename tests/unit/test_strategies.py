"""Unit tests for authentication strategies and the strategy registry"""

from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import pytest

from identity_service.core.auth.credentials import CipherProtector, SecretCodec
from identity_service.core.auth.delegated import (
    DelegatedProviderStrategy,
    facebook_config,
    google_config,
)
from identity_service.core.auth.local import LocalStrategy
from identity_service.core.auth.registry import StrategyRegistry
from identity_service.domain.errors import (
    AuthFailureError,
    AuthUnavailableError,
    BadPasswordError,
    MissingCredentialError,
    NoSuchUserError,
)
from identity_service.domain.models import LocalCredentials, NewIdentity, ProviderAssertion


@pytest.fixture
def google(store) -> DelegatedProviderStrategy:
    return DelegatedProviderStrategy(
        google_config("google-client", "google-secret", "http://test/api/v1/auth/google/callback"),
        store,
    )


@pytest.mark.unit
class TestLocalStrategy:
    """Test username/password verification"""

    @pytest.mark.asyncio
    async def test_valid_password(self, store, protector):
        """Happy path: stored hash validates the password"""
        created = await store.create(
            NewIdentity(username="alice", credential_secret=protector.protect("pw1"))
        )

        identity = await LocalStrategy(store, protector).verify(LocalCredentials("alice", "pw1"))

        assert identity.id == created.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, store, protector):
        await store.create(NewIdentity(username="alice", credential_secret=protector.protect("pw1")))

        with pytest.raises(BadPasswordError):
            await LocalStrategy(store, protector).verify(LocalCredentials("alice", "pw2"))

    @pytest.mark.asyncio
    async def test_unknown_user(self, store, protector):
        with pytest.raises(NoSuchUserError):
            await LocalStrategy(store, protector).verify(LocalCredentials("bob", "pw1"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("username,password", [("", "pw1"), ("alice", ""), ("", "")])
    async def test_missing_fields(self, store, protector, username, password):
        with pytest.raises(MissingCredentialError):
            await LocalStrategy(store, protector).verify(LocalCredentials(username, password))

    @pytest.mark.asyncio
    async def test_identity_without_secret(self, store, protector):
        """Edge case: provider identities cannot log in with a password"""
        await store.create(NewIdentity(username="alice"))

        with pytest.raises(BadPasswordError):
            await LocalStrategy(store, protector).verify(LocalCredentials("alice", "pw1"))

    @pytest.mark.asyncio
    async def test_cipher_variant(self, store):
        protector = CipherProtector(SecretCodec("process-secret"))
        await store.create(NewIdentity(username="alice", credential_secret=protector.protect("pw1")))
        strategy = LocalStrategy(store, protector)

        assert (await strategy.verify(LocalCredentials("alice", "pw1"))).username == "alice"
        with pytest.raises(BadPasswordError):
            await strategy.verify(LocalCredentials("alice", "pw2"))

    @pytest.mark.asyncio
    async def test_store_unavailable(self, protector):
        store = AsyncMock()
        store.find_by_username.side_effect = AuthUnavailableError("Backing store timed out")

        with pytest.raises(AuthUnavailableError):
            await LocalStrategy(store, protector).verify(LocalCredentials("alice", "pw1"))


@pytest.mark.unit
class TestDelegatedProviderStrategy:
    """Test provider assertion handling"""

    @pytest.mark.asyncio
    async def test_first_visit_creates_identity(self, google, store):
        identity = await google.verify(
            ProviderAssertion("google", "g-42", {"displayName": "Alice A."})
        )

        assert identity.provider_links == {"google": "g-42"}
        assert identity.display_name == "Alice A."
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_revisit_returns_same_identity(self, google, store):
        first = await google.verify(ProviderAssertion("google", "g-42"))
        second = await google.verify(ProviderAssertion("google", "g-42"))

        assert first.id == second.id
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_assertion_for_other_provider(self, google):
        with pytest.raises(AuthFailureError):
            await google.verify(ProviderAssertion("facebook", "f-1"))

    @pytest.mark.asyncio
    async def test_assertion_without_subject(self, google):
        with pytest.raises(AuthFailureError):
            await google.verify(ProviderAssertion("google", ""))

    def test_authorization_url(self, google):
        url = urlparse(google.authorization_url("state-123"))
        params = parse_qs(url.query)

        assert url.netloc == "accounts.google.com"
        assert params["client_id"] == ["google-client"]
        assert params["state"] == ["state-123"]
        assert params["scope"] == ["profile"]
        assert params["redirect_uri"] == ["http://test/api/v1/auth/google/callback"]

    def test_unconfigured_provider_has_no_url(self, store):
        facebook = DelegatedProviderStrategy(facebook_config(None, None, None), store)

        with pytest.raises(AuthUnavailableError):
            facebook.authorization_url("state-123")

    @pytest.mark.asyncio
    async def test_unconfigured_provider_still_accepts_assertions(self, store):
        facebook = DelegatedProviderStrategy(facebook_config(None, None, None), store)

        identity = await facebook.verify(ProviderAssertion("facebook", "f-1", {"name": "Bob"}))

        assert identity.display_name == "Bob"


@pytest.mark.unit
class TestStrategyRegistry:
    """Test strategy lookup"""

    def test_register_and_get(self, store, protector, google):
        registry = StrategyRegistry()
        local = LocalStrategy(store, protector)
        registry.register(local)
        registry.register(google)

        assert registry.get("local") is local
        assert registry.local is local
        assert registry.provider("google") is google
        assert registry.names() == ["google", "local"]
        assert "google" in registry

    def test_duplicate_name_rejected(self, store, protector):
        registry = StrategyRegistry()
        registry.register(LocalStrategy(store, protector))

        with pytest.raises(ValueError):
            registry.register(LocalStrategy(store, protector))

    def test_unknown_strategy(self):
        with pytest.raises(AuthFailureError):
            StrategyRegistry().get("twitter")

    def test_local_is_not_a_provider(self, store, protector):
        registry = StrategyRegistry()
        registry.register(LocalStrategy(store, protector))

        with pytest.raises(AuthFailureError):
            registry.provider("local")
