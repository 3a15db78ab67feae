"""Unit tests for InMemoryCredentialStore

Exercises the uniqueness rules and find-or-create behaviour shared by every
CredentialStore backend.
"""

import asyncio

import pytest

from identity_service.domain.errors import (
    AuthUnavailableError,
    DuplicateKeyError,
    NotFoundError,
)
from identity_service.domain.models import IdentityPatch, NewIdentity
from identity_service.infrastructure.store import InMemoryCredentialStore


@pytest.mark.unit
class TestCreate:
    """Test identity creation"""

    @pytest.mark.asyncio
    async def test_create_local_identity(self, store):
        """Happy path: store assigns id and defaults display name"""
        identity = await store.create(NewIdentity(username="alice", credential_secret="h1"))

        assert identity.id
        assert identity.username == "alice"
        assert identity.display_name == "alice"
        assert identity.provider_links == {}
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_duplicate_username_rejected(self, store):
        await store.create(NewIdentity(username="alice", credential_secret="h1"))

        with pytest.raises(DuplicateKeyError):
            await store.create(NewIdentity(username="alice", credential_secret="h2"))

        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_username_uniqueness_ignores_case(self, store):
        await store.create(NewIdentity(username="Alice", credential_secret="h1"))

        with pytest.raises(DuplicateKeyError):
            await store.create(NewIdentity(username="alice", credential_secret="h2"))

    @pytest.mark.asyncio
    async def test_duplicate_provider_link_rejected(self, store):
        await store.create(NewIdentity(provider_links={"google": "g-42"}))

        with pytest.raises(DuplicateKeyError):
            await store.create(NewIdentity(provider_links={"google": "g-42"}))

    @pytest.mark.asyncio
    async def test_same_external_id_on_other_provider(self, store):
        """Edge case: links are unique per (provider, external id) pair"""
        await store.create(NewIdentity(provider_links={"google": "42"}))
        await store.create(NewIdentity(provider_links={"facebook": "42"}))

        assert await store.count() == 2

    @pytest.mark.asyncio
    async def test_returned_identity_is_a_copy(self, store):
        identity = await store.create(NewIdentity(provider_links={"google": "g-42"}))
        identity.provider_links["facebook"] = "f-1"

        stored = await store.find_by_id(identity.id)
        assert stored.provider_links == {"google": "g-42"}


@pytest.mark.unit
class TestFind:
    """Test lookups"""

    @pytest.mark.asyncio
    async def test_find_by_username(self, store):
        created = await store.create(NewIdentity(username="alice", credential_secret="h1"))

        assert (await store.find_by_username("ALICE")).id == created.id
        assert await store.find_by_username("bob") is None
        assert await store.find_by_username("") is None

    @pytest.mark.asyncio
    async def test_find_by_provider_id(self, store):
        created = await store.create(NewIdentity(provider_links={"google": "g-42"}))

        assert (await store.find_by_provider_id("google", "g-42")).id == created.id
        assert await store.find_by_provider_id("facebook", "g-42") is None

    @pytest.mark.asyncio
    async def test_find_by_unknown_id(self, store):
        assert await store.find_by_id("missing") is None


@pytest.mark.unit
class TestUpdate:
    """Test partial updates"""

    @pytest.mark.asyncio
    async def test_set_secret_note(self, store):
        identity = await store.create(NewIdentity(username="alice", credential_secret="h1"))

        updated = await store.update(identity.id, IdentityPatch(secret_note="likes tea"))

        assert updated.secret_note == "likes tea"
        assert updated.updated_at is not None
        assert (await store.find_by_id(identity.id)).secret_note == "likes tea"

    @pytest.mark.asyncio
    async def test_update_keeps_unlisted_fields(self, store):
        identity = await store.create(
            NewIdentity(username="alice", credential_secret="h1", display_name="Alice")
        )
        await store.update(identity.id, IdentityPatch(secret_note="first"))

        updated = await store.update(identity.id, IdentityPatch(display_name="Al"))

        assert updated.secret_note == "first"
        assert updated.credential_secret == "h1"

    @pytest.mark.asyncio
    async def test_update_missing_identity(self, store):
        with pytest.raises(NotFoundError):
            await store.update("missing", IdentityPatch(secret_note="x"))

    @pytest.mark.asyncio
    async def test_add_provider_link(self, store):
        identity = await store.create(NewIdentity(username="alice", credential_secret="h1"))

        await store.update(identity.id, IdentityPatch(provider_links={"google": "g-42"}))

        assert (await store.find_by_provider_id("google", "g-42")).id == identity.id

    @pytest.mark.asyncio
    async def test_link_owned_by_other_identity(self, store):
        await store.create(NewIdentity(provider_links={"google": "g-42"}))
        local = await store.create(NewIdentity(username="alice", credential_secret="h1"))

        with pytest.raises(DuplicateKeyError):
            await store.update(local.id, IdentityPatch(provider_links={"google": "g-42"}))

    @pytest.mark.asyncio
    async def test_existing_link_not_repointed(self, store):
        identity = await store.create(NewIdentity(provider_links={"google": "g-42"}))

        with pytest.raises(DuplicateKeyError):
            await store.update(identity.id, IdentityPatch(provider_links={"google": "g-99"}))

        assert await store.find_by_provider_id("google", "g-99") is None


@pytest.mark.unit
class TestFindOrCreate:
    """Test find-or-create by provider id"""

    @pytest.mark.asyncio
    async def test_creates_on_first_visit(self, store):
        identity = await store.find_or_create_by_provider_id(
            "google", "g-42", {"displayName": "Alice A."}
        )

        assert identity.provider_links == {"google": "g-42"}
        assert identity.username is None
        assert identity.credential_secret is None
        assert identity.display_name == "Alice A."

    @pytest.mark.asyncio
    async def test_structured_profile_name(self, store):
        """Edge case: a name object never becomes the display name"""
        profile = {"name": {"givenName": "Alice", "familyName": "A"}}

        identity = await store.find_or_create_by_provider_id("google", "g-42", profile)

        assert identity.display_name is None
        assert (await store.find_by_id(identity.id)).display_name is None

    @pytest.mark.asyncio
    async def test_returns_existing_on_revisit(self, store):
        first = await store.find_or_create_by_provider_id("google", "g-42")
        second = await store.find_or_create_by_provider_id("google", "g-42")

        assert first.id == second.id
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_visits_create_one_identity(self, store):
        """Concurrency: simultaneous callbacks converge on one record"""
        results = await asyncio.gather(
            *(store.find_or_create_by_provider_id("google", "g-42") for _ in range(10))
        )

        assert len({identity.id for identity in results}) == 1
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, monkeypatch):
        """Error case: a claim that keeps conflicting without a readable owner"""
        store = InMemoryCredentialStore(conflict_retries=2)
        attempts = []

        async def always_conflict(new_identity):
            attempts.append(new_identity)
            raise DuplicateKeyError("conflict", key="google:g-42")

        monkeypatch.setattr(store, "create", always_conflict)

        with pytest.raises(AuthUnavailableError):
            await store.find_or_create_by_provider_id("google", "g-42")

        assert len(attempts) == 3
